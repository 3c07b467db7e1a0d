"""HTTP transport for vendor image-generation requests.

Processing flow:
    1. POST the JSON payload with the primary proxy configuration.
    2. On a network-level failure, retry exactly once with the fallback proxy
       map carried by `TransportConfig`.
    3. Return the raw `requests.Response`; status handling is left to callers.

Retry behavior:
    - Only `requests` connection errors and timeouts trigger the retry.
    - The retry runs when a fallback exists and either no proxy was used for
      the first attempt or the failure was a timeout.
    - HTTP error statuses are returned, never retried.
    - A failing retry propagates its exception.

Security considerations:
    Debug files record the URL, headers and proxy usage but replace the body
    with a `[BODY_CONTENT]` marker.
"""

import json
import logging
from datetime import datetime, timezone

import requests

from imagegen.config.provider_config import REQUEST_TIMEOUT
from imagegen.core.artifacts import save_file
from imagegen.image.proxy import TransportConfig

logger = logging.getLogger(__name__)

NETWORK_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


def _post(url, payload, headers, proxies, trust_env, timeout):
    with requests.Session() as session:
        session.trust_env = trust_env
        return session.post(url, json=payload, headers=headers, proxies=proxies, timeout=timeout)


def _should_retry(transport: TransportConfig, err) -> bool:
    if not transport.fallback_proxies:
        return False
    return not transport.uses_proxy or isinstance(err, requests.exceptions.Timeout)


def _write_debug_file(path, url, headers, transport):
    debug_data = {
        "url": url,
        "options": {
            "method": "POST",
            "headers": {k: ("[REDACTED]" if k.lower() in ("authorization", "x-goog-api-key") else v)
                        for k, v in (headers or {}).items()},
            "body": "[BODY_CONTENT]",
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "proxyUsed": transport.uses_proxy,
    }
    save_file(path, json.dumps(debug_data, indent=2), silent=True)


def post_json(url: str, payload: dict, headers=None, transport=None, debug_path=None, timeout=REQUEST_TIMEOUT):
    """Send one JSON POST request with a single proxy fallback attempt.

    Args:
        url: Vendor endpoint.
        payload: JSON-serializable request body.
        headers: Extra request headers (auth, content type).
        transport: Proxy configuration; defaults to a direct/environment setup.
        debug_path: When set, request metadata is written there after a reply.
        timeout: Per-attempt timeout in seconds.

    Returns:
        The `requests.Response`, whatever its status code.

    Raises:
        requests.exceptions.RequestException: When the request (and the retry,
        if attempted) fails at the network level.
    """
    transport = transport or TransportConfig()
    headers = {"Content-Type": "application/json", **(headers or {})}

    try:
        response = _post(url, payload, headers, transport.proxies, transport.trust_env, timeout)
    except NETWORK_ERRORS as err:
        logger.error("Network error when making API request: %s", err)
        logger.error("This might be a proxy configuration issue. Check your proxy settings.")

        if not _should_retry(transport, err):
            raise

        logger.info("Retrying request with fallback proxy: %s", transport.fallback_proxies.get("https"))
        try:
            response = _post(url, payload, headers, transport.fallback_proxies, transport.trust_env, timeout)
        except requests.exceptions.RequestException as retry_err:
            logger.error("Retry also failed: %s", retry_err)
            raise

    if debug_path:
        _write_debug_file(debug_path, url, headers, transport)

    return response
