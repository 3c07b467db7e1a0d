"""Credential resolution for the two vendor APIs.

Imagen (Vertex AI):
    Service-account key file -> OAuth2 bearer token minted with `google-auth`.
    The token request goes through a `requests` session carrying the same proxy
    map as the generation request; no environment variables are touched.

Gemini:
    Static API key from `GEMINI_API_KEY`, `config/gemini.key` or the preference
    store, in that order.

Failure handling:
    Token errors (`google.auth.exceptions.GoogleAuthError`) propagate; the
    Imagen flow converts them to an authentication failure result.
"""

import logging
import os

import requests
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from imagegen.config.preferences import get_config
from imagegen.config.provider_config import GEMINI_KEY_FILE, IMAGEN_SCOPES, config_directory, load_key

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_FILENAME = "service-account.json"
LOCAL_SERVICE_ACCOUNT_FILENAME = ".service-account.json"


def get_service_account_key_path():
    """Return the first service-account key file found, or `None`.

    Resolution order:
        1. `GOOGLE_APPLICATION_CREDENTIALS` (returned even if the file is absent,
           so the CLI can report the bad path).
        2. `<config dir>/service-account.json`.
        3. `./.service-account.json`.
    """
    env_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    if env_path:
        return env_path

    for candidate in (
        os.path.join(config_directory(), SERVICE_ACCOUNT_FILENAME),
        os.path.join(os.getcwd(), LOCAL_SERVICE_ACCOUNT_FILENAME),
    ):
        if os.path.exists(candidate):
            return candidate

    return None


def get_gemini_api_key():
    """Return the Gemini API key from env, key file or stored preferences."""
    key = load_key(GEMINI_KEY_FILE)
    if key:
        return key
    return get_config().get("geminiApiKey") or None


def get_access_token(key_file: str, proxies=None) -> str:
    """Mint a `cloud-platform` bearer token from a service-account key file.

    Args:
        key_file: Path to the service-account JSON key.
        proxies: Optional `requests` proxy map for the token request.
    """
    if proxies:
        logger.info("Using proxy for authentication: %s", proxies.get("https"))
    else:
        logger.debug("No proxy configured for authentication")

    credentials = service_account.Credentials.from_service_account_file(key_file, scopes=IMAGEN_SCOPES)

    with requests.Session() as session:
        if proxies:
            session.proxies.update(proxies)
        credentials.refresh(Request(session=session))

    return credentials.token
