"""Proxy detection and per-invocation transport configuration.

Processing flow:
    1. Reuse proxy settings cached in the preference store unless a fresh
       detection is forced.
    2. Otherwise read `HTTP_PROXY`/`HTTPS_PROXY`/`NO_PROXY` (either case) and
       cache the result.
    3. Build a `TransportConfig` holding the primary proxy map and the alternate
       map used for the single fallback attempt in `client.post_json`.

Side effects:
    Only the preference store is written. The process environment is read,
    never modified.
"""

import logging
import os
from dataclasses import dataclass

from imagegen.config.preferences import get_config, save_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportConfig:
    """Proxy configuration for one outbound request and its single retry.

    Attributes:
        proxies: `requests` proxy map for the first attempt (`None` = direct
            or environment-provided).
        fallback_proxies: Proxy map for the retry after a network error
            (`None` disables the retry).
        trust_env: Let `requests` read proxy variables from the environment.
    """

    proxies: dict | None = None
    fallback_proxies: dict | None = None
    trust_env: bool = True

    @property
    def uses_proxy(self) -> bool:
        return bool(self.proxies)


def _env(*names):
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def proxy_map(url):
    """Return a `requests` proxy map routing HTTP and HTTPS through `url`."""
    if not url:
        return None
    return {"http": url, "https": url}


def detect_system_proxy(force: bool = False) -> dict:
    """Return `{httpProxy, httpsProxy, noProxy}` for the current environment.

    Args:
        force: Ignore cached settings and re-read the environment.

    Side effects:
        Freshly detected settings are cached in the preference store.
    """
    stored = get_config().get("proxySettings")
    if stored and not force:
        logger.debug("Using stored proxy settings")
        return stored

    http_proxy = _env("HTTP_PROXY", "http_proxy")
    https_proxy = _env("HTTPS_PROXY", "https_proxy")
    no_proxy = _env("NO_PROXY", "no_proxy")

    logger.debug("Environment HTTP_PROXY: %s", http_proxy or "not set")
    logger.debug("Environment HTTPS_PROXY: %s", https_proxy or "not set")
    logger.debug("Environment NO_PROXY: %s", no_proxy or "not set")

    if not https_proxy and http_proxy:
        https_proxy = http_proxy
        logger.debug("Using HTTP_PROXY for HTTPS connections: %s", https_proxy)

    settings = {
        "httpProxy": http_proxy,
        "httpsProxy": https_proxy,
        "noProxy": no_proxy,
    }
    save_config({"proxySettings": settings})
    return settings


def build_transport_config(no_proxy: bool = False, detect_proxy: bool = False) -> TransportConfig:
    """Resolve primary and fallback proxies for one invocation.

    Primary:
        None with `no_proxy`, else `SYSTEM_PROXY`, else the detected HTTPS proxy.
    Fallback:
        `SYSTEM_PROXY`, else (unless `no_proxy`) the detected HTTPS proxy.
    """
    system_proxy = os.getenv("SYSTEM_PROXY")
    detected = None
    if not no_proxy:
        detected = detect_system_proxy(force=detect_proxy).get("httpsProxy")

    if no_proxy:
        logger.debug("Proxy usage disabled with --no-proxy")
        primary = None
    elif system_proxy:
        logger.debug("Using explicit SYSTEM_PROXY: %s", system_proxy)
        primary = system_proxy
    else:
        primary = detected

    fallback = system_proxy or detected

    if primary:
        logger.info("Using proxy settings: %s", primary)

    return TransportConfig(
        proxies=proxy_map(primary),
        fallback_proxies=proxy_map(fallback),
        trust_env=not no_proxy,
    )
