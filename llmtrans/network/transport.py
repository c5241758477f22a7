"""
Outbound HTTP transport selection.

Builds the httpx client every HTTP backend talks through: direct, via an
HTTP(S) proxy, or via a SOCKS5 proxy. With a proxy configured, the bypass
list is evaluated per request against the destination host, so a single
client can reach bypassed hosts directly and everything else through the
proxy.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence
from urllib.parse import quote, urlsplit, urlunsplit

import httpx

from llmtrans.core.exceptions import ConfigurationError, UnsupportedProxySchemeError
from llmtrans.utils.config_loader import ProxyConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
CONNECT_TIMEOUT = 30.0

HTTP_SCHEMES = ("http", "https")
SOCKS_SCHEMES = ("socks5", "socks5h")


def should_bypass_proxy(host: str, no_proxy: Optional[Sequence[str]]) -> bool:
    """
    Decide whether ``host`` is reached directly instead of through the proxy.

    Patterns are compared case-insensitively:
      * ``*`` bypasses every host
      * ``*.example.com`` bypasses hosts ending in ``example.com``
      * other patterns containing ``*`` are compared as literal text against
        the start or end of the host, after ``.`` -> ``\\.`` and ``*`` -> ``.*``
        rewriting (a prefix/suffix string test, not glob matching)
      * anything else must equal the host exactly (IP literals included)
    """
    if not no_proxy:
        return False

    host = host.lower()

    for pattern in no_proxy:
        pattern = pattern.strip().lower()

        if not pattern:
            continue

        if pattern == "*":
            return True

        if pattern.startswith("*.") and host.endswith(pattern[2:]):
            return True

        if "*" in pattern:
            if _match_pattern(host, pattern):
                return True
        elif host == pattern:
            # covers IP literals too: they are compared as written
            return True

    return False


def _match_pattern(text: str, pattern: str) -> bool:
    pattern = pattern.replace(".", "\\.").replace("*", ".*")
    return text.startswith(pattern) or text.endswith(pattern)


def _with_credentials(url: str, username: str, password: str) -> str:
    """Embed ``username:password`` into a proxy URL (replacing any present)."""
    parts = urlsplit(url)
    netloc = parts.hostname or ""
    if ":" in netloc:
        netloc = f"[{netloc}]"
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    netloc = f"{quote(username, safe='')}:{quote(password, safe='')}@{netloc}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class RoutingTransport(httpx.BaseTransport):
    """Sends each request either directly or through the proxy leg.

    Immutable after construction: the bypass list and both transports are
    fixed, so one instance can serve a whole translation call.
    """

    def __init__(self, proxy_url: str, no_proxy: Optional[List[str]] = None):
        self.proxy_url = proxy_url
        self.no_proxy = tuple(no_proxy or ())
        self._direct = httpx.HTTPTransport()
        self._proxied = httpx.HTTPTransport(proxy=httpx.Proxy(proxy_url))

    def select(self, host: str) -> httpx.BaseTransport:
        if should_bypass_proxy(host, self.no_proxy):
            return self._direct
        return self._proxied

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        transport = self.select(request.url.host)
        return transport.handle_request(request)

    def close(self) -> None:
        self._direct.close()
        self._proxied.close()


def deadline_hook(remaining: Callable[[], Optional[float]]) -> Callable[[httpx.Request], None]:
    """
    Request hook that shrinks each request's timeouts to the time left.

    ``remaining`` returns seconds until the caller's deadline, or None when
    there is none. Applied per request, so retries issued late in a call get
    a correspondingly shorter budget.
    """
    def cap(request: httpx.Request) -> None:
        left = remaining()
        if left is None:
            return
        current = request.extensions.get("timeout") or {}
        request.extensions["timeout"] = {
            key: left if value is None else min(value, left)
            for key, value in current.items()
        }
    return cap


def build_http_client(
    proxy: Optional[ProxyConfig] = None,
    timeout: float = DEFAULT_TIMEOUT,
    remaining: Optional[Callable[[], Optional[float]]] = None
) -> httpx.Client:
    """
    Build the HTTP client for one translation call.

    Args:
        proxy: Proxy settings; None or an empty URL means direct connections
        timeout: Per-request wall-clock budget in seconds
        remaining: Seconds left before the caller's deadline; when given,
            no request is allowed to outlive it

    Returns:
        Configured httpx.Client

    Raises:
        UnsupportedProxySchemeError: scheme is not http, https, socks5 or socks5h
        ConfigurationError: proxy URL cannot be parsed
    """
    client_timeout = httpx.Timeout(timeout, connect=min(timeout, CONNECT_TIMEOUT))
    event_hooks = {"request": [deadline_hook(remaining)]} if remaining else None

    # proxy environment variables are folded into the config by the loader
    if proxy is None or not proxy.url:
        return httpx.Client(timeout=client_timeout, trust_env=False, event_hooks=event_hooks)

    try:
        parts = urlsplit(proxy.url)
        hostname = parts.hostname
        port = parts.port
    except ValueError as e:
        raise ConfigurationError(f"invalid proxy URL: {e}", "proxy.url", proxy.url) from e

    scheme = parts.scheme.lower()
    if scheme not in HTTP_SCHEMES + SOCKS_SCHEMES:
        raise UnsupportedProxySchemeError(scheme or "<none>")
    if not hostname:
        raise ConfigurationError("invalid proxy URL: missing host", "proxy.url", proxy.url)

    proxy_url = proxy.url
    if proxy.username and proxy.password:
        proxy_url = _with_credentials(proxy_url, proxy.username, proxy.password)

    logger.debug(f"Using {scheme} proxy {hostname}:{port or 'default'} (bypass: {', '.join(proxy.no_proxy) or 'none'})")

    transport = RoutingTransport(proxy_url, proxy.no_proxy)
    return httpx.Client(transport=transport, timeout=client_timeout, trust_env=False, event_hooks=event_hooks)
