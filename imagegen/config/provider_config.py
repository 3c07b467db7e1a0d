"""Provider/runtime configuration for the image layer.

Architectural role:
    Centralizes endpoint templates, model defaults and credential lookup for
    `imagegen.image.imagen`, `imagegen.image.gemini` and `imagegen.image.auth`.

Determinism:
    Deterministic for a fixed process environment and key files. Values are
    resolved at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None` and reported by the CLI as a
    configuration error.
"""

import os
from dotenv import load_dotenv

load_dotenv()

APP_NAME = "imagen-gemini-cli"

# API selection when neither the CLI nor the preference store names one.
DEFAULT_API = os.getenv("DEFAULT_API", "imagen")

# Vertex AI Imagen endpoint settings.
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT", "")
GOOGLE_CLOUD_LOCATION = os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1")
IMAGEN_MODEL = os.getenv("IMAGEN_MODEL", "imagen-3.0-generate-002")
IMAGEN_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

IMAGEN_URL_TEMPLATE = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:predict"
)

# Gemini (Generative Language API) endpoint settings.
GEMINI_API_DOMAIN = os.getenv("GEMINI_API_DOMAIN", "generativelanguage.googleapis.com")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-exp-image-generation")
GEMINI_KEY_FILE = "config/gemini.key"

GEMINI_URL_TEMPLATE = "https://{domain}/v1beta/models/{model}:generateContent"

# Per-request HTTP timeout in seconds.
REQUEST_TIMEOUT = 120

# Choice lists shared by the CLI and the interactive flow.
ASPECT_RATIOS = ["1:1", "16:9", "9:16", "3:4", "4:3"]
IMAGE_COUNTS = [1, 2, 3, 4]
PERSON_GENERATION_MODES = ["block_all", "block_children", "allow_adult", "allow_all", "dont_allow"]
SAFETY_SETTINGS = ["block_none", "block_few", "block_some", "block_most"]

SAMPLE_ENV = """# Google Cloud and Imagen settings
GOOGLE_APPLICATION_CREDENTIALS=path/to/your/service-account.json
GOOGLE_CLOUD_PROJECT=your-project-id
GOOGLE_CLOUD_LOCATION=us-central1

# Gemini API settings
GEMINI_API_KEY=your-gemini-api-key

# General settings
DEFAULT_API=imagen  # or 'gemini'

# Proxy settings are detected from the environment automatically
# HTTP_PROXY=http://proxy.example.com:8080
# HTTPS_PROXY=http://proxy.example.com:8080
# NO_PROXY=localhost,127.0.0.1
"""


def imagen_url(project: str, location: str, model: str) -> str:
    """Return the Imagen `:predict` URL for a project/location/model."""
    return IMAGEN_URL_TEMPLATE.format(project=project, location=location, model=model)


def gemini_url(model: str) -> str:
    """Return the Gemini `:generateContent` URL on the configured domain."""
    return GEMINI_URL_TEMPLATE.format(domain=GEMINI_API_DOMAIN, model=model)


def config_directory() -> str:
    """Return the platform configuration directory for this application.

    `IMAGEGEN_CONFIG_DIR` overrides the platform default. The directory is not
    created here.
    """
    override = os.getenv("IMAGEGEN_CONFIG_DIR")
    if override:
        return override
    if os.name == "nt":
        base = os.getenv("APPDATA") or os.path.join(os.path.expanduser("~"), "AppData", "Roaming")
        return os.path.join(base, APP_NAME)
    return os.path.join(os.path.expanduser("~"), ".config", APP_NAME)


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/gemini.key` -> `GEMINI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing or empty file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def create_sample_env_file(directory=None):
    """Write a commented sample `.env` when the directory has none.

    Returns:
        Path of the created file, or `None` when one already existed.
    """
    env_path = os.path.join(directory or os.getcwd(), ".env")
    if os.path.exists(env_path):
        return None

    with open(env_path, "w", encoding="utf-8") as f:
        f.write(SAMPLE_ENV)
    print(f"Created sample .env file at {env_path}")
    return env_path
