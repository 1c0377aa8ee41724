"""Thin helper layer for talking to the host application over JSON-RPC.

All calls are best effort: when no ``HOST_RPC_URL`` is configured, or the
host does not answer, the call is logged and ``None`` is returned.
"""
from __future__ import annotations

import requests
from typing import Any

import config
from logger import log


def _rpc(method: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
    if not config.HOST_RPC_URL:
        log.debug("Host RPC disabled, skipping %s", method)
        return None
    payload = {"jsonrpc": "2.0", "method": method, "params": params or {}, "id": 1}
    try:
        r = requests.post(
            config.HOST_RPC_URL,
            headers=config.HEADERS,
            json=payload,
            timeout=config.HOST_RPC_TIMEOUT,
        )
        if r.status_code != 200:
            log.warning("Host RPC non-200 (%s) method=%s", r.status_code, method)
        return r.json()
    except Exception as e:  # noqa: BLE001
        log.error("Host RPC error (%s): %s", method, e)
        return None


def notify(title: str, message: str) -> None:
    """User-visible, non-fatal error notification."""
    log.warning("%s: %s", title, message)
    _rpc("GUI.ShowNotification", {"title": title, "message": message, "type": "error"})


def start_download_url(url: str) -> None:
    log.info("Forwarding download url to host: %s", url)
    _rpc("Events.StartDownloadUrl", {"url": url})


def set_associated(enabled: bool) -> None:
    """Toggle the host's own nxm association flag."""
    log.debug("set_associated=%s", enabled)
    _rpc("Settings.SetAssociateNXM", {"enabled": enabled})


def set_proxy_enabled(enabled: bool) -> None:
    log.debug("set_proxy_enabled=%s", enabled)
    _rpc("Settings.SetProxyEnabled", {"enabled": enabled})


__all__ = ["notify", "start_download_url", "set_associated", "set_proxy_enabled"]
