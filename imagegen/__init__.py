"""imagegen: command-line client for Google's Imagen and Gemini image APIs.

Architectural role:
    - `api`: CLI and interactive adapters (argument parsing, prompts, exit codes).
    - `image`: vendor request builders, response normalizers, transport and auth.
    - `core`: vendor-neutral JSON path access, payload masking, artifact writing
      and result records.
    - `config`: environment-driven provider configuration and the persistent
      preference store.
"""

__version__ = "1.0.0"
