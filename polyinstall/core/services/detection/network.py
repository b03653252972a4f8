"""
Network probing — connectivity, registry reachability, proxy detection.

Read-only, best-effort checks. Blocking urllib calls; the async entry
point ``probe_network`` runs them in a worker thread so a run's event
loop is never blocked.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
import urllib.error
import urllib.request
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "https://registry.npmjs.org/"

_CONNECTIVITY_ENDPOINTS: tuple[str, ...] = (
    "https://www.google.com",
    "https://www.cloudflare.com",
    "https://1.1.1.1",
)

_USER_AGENT = "polyinstall/0.1"


@dataclass(frozen=True)
class NetworkStatus:
    is_online: bool
    registry_reachable: bool
    registry: str = DEFAULT_REGISTRY
    proxy_url: str | None = None


# ── Registry reachability ───────────────────────────────────────


def check_registry_reachable(url: str, timeout: float = 5) -> dict:
    """Probe a URL with a HEAD request.

    Any HTTP response, including an error status, counts as reachable:
    the server answered.

    Returns::

        {"reachable": True, "url": "https://...", "status": 200, "latency_ms": 42}
        or
        {"reachable": False, "url": "https://...", "error": "timeout", "latency_ms": 5000}
    """
    start = time.monotonic()
    req = urllib.request.Request(
        url,
        method="HEAD",
        headers={"User-Agent": _USER_AGENT},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = resp.getcode()
    except urllib.error.HTTPError as exc:
        status = exc.code
    except Exception as exc:
        return {
            "reachable": False,
            "url": url,
            "error": str(exc)[:200],
            "latency_ms": int((time.monotonic() - start) * 1000),
        }
    return {
        "reachable": True,
        "url": url,
        "status": status,
        "latency_ms": int((time.monotonic() - start) * 1000),
    }


def check_internet_connectivity(timeout: float = 5) -> bool:
    """True as soon as one well-known endpoint answers."""
    for url in _CONNECTIVITY_ENDPOINTS:
        if check_registry_reachable(url, timeout=timeout)["reachable"]:
            logger.debug("Internet connectivity confirmed via %s", url)
            return True
    logger.warning("No internet connectivity detected")
    return False


# ── Proxy / corporate environment ───────────────────────────────


def detect_proxy() -> dict:
    """Detect HTTP/HTTPS proxy configuration from the environment.

    Returns::

        {"has_proxy": True, "http_proxy": "http://...",
         "https_proxy": "http://...", "no_proxy": "localhost,..."}
    """
    http_proxy = os.environ.get("http_proxy") or os.environ.get("HTTP_PROXY", "")
    https_proxy = os.environ.get("https_proxy") or os.environ.get("HTTPS_PROXY", "")
    no_proxy = os.environ.get("no_proxy") or os.environ.get("NO_PROXY", "")

    result: dict = {"has_proxy": bool(http_proxy or https_proxy)}
    if http_proxy:
        result["http_proxy"] = http_proxy
    if https_proxy:
        result["https_proxy"] = https_proxy
    if no_proxy:
        result["no_proxy"] = no_proxy
    return result


# ── Aggregate ───────────────────────────────────────────────────


def network_status(registry: str | None = None, timeout: float = 5) -> NetworkStatus:
    """Connectivity plus registry reachability (registry only probed when online)."""
    registry = registry or DEFAULT_REGISTRY
    online = check_internet_connectivity(timeout=timeout)
    reachable = False
    if online:
        probe = check_registry_reachable(registry, timeout=timeout * 2)
        reachable = probe["reachable"]
        if not reachable:
            logger.warning("Cannot reach registry %s: %s", registry, probe.get("error"))

    proxy = detect_proxy()
    return NetworkStatus(
        is_online=online,
        registry_reachable=reachable,
        registry=registry,
        proxy_url=proxy.get("https_proxy") or proxy.get("http_proxy"),
    )


async def probe_network(registry: str | None = None) -> NetworkStatus:
    """Async wrapper: runs the blocking probes in a worker thread."""
    return await asyncio.to_thread(network_status, registry)
