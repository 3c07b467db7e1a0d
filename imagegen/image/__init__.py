"""Image generation adapter package.

Scope:
    Provides the Imagen and Gemini request flows, their response normalizers,
    the proxy-aware HTTP transport, credential lookup and the `service.generate`
    dispatcher used by the CLI.

Non-goals:
    - No vendors beyond Imagen and Gemini.
    - No concurrent or batched generation.
    - No retry beyond the single proxy fallback in `client.post_json`.
"""
