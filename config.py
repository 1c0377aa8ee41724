"""Runtime configuration.

Reads environment variables once (via python-dotenv unless SKIP_DOTENV is
set) and exposes constants for the rest of the code. Keep this lean: only
parsing + validation. The routing document itself lives in
``proxy.store``; this module only says where to find things.
"""
from __future__ import annotations

import os
import sys
import tempfile
from dotenv import load_dotenv

if not os.getenv("SKIP_DOTENV"):
    load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _default_data_dir() -> str:
    # Same location the host uses for per-user application data.
    local = os.getenv("LOCALAPPDATA")
    if local:
        return local
    return os.path.join(os.path.expanduser("~"), ".local", "share")


def _expand(raw: str) -> str:
    return os.path.expanduser(os.path.expandvars(raw))


DATA_DIR: str = _expand(os.getenv("NXMPROXY_DATA_DIR", "") or _default_data_dir())
CONFIG_PATH: str = os.path.join(DATA_DIR, "nxmproxy", "config.toml")

# External handler binary performing the OS-level protocol registration.
HANDLER_BINARY: str = _expand(
    os.getenv(
        "HANDLER_BINARY",
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "nxmproxy.exe"),
    )
)
# Executable placed in the default launch command for the self manager.
HOST_EXECUTABLE: str = os.getenv("HOST_EXECUTABLE", "") or sys.executable
HOST_NAME: str = os.getenv("HOST_NAME", "Vortex")

DEFAULT_PIPE: str = os.getenv("DEFAULT_PIPE", "vortex_download")
CHANNEL_DIR: str = _expand(os.getenv("CHANNEL_DIR", "") or tempfile.gettempdir())
STOP_GRACE_SECONDS: float = _env_float("STOP_GRACE_SECONDS", 2.0)

# Optional JSON-RPC endpoint of the host application. Empty -> host calls
# are only logged.
HOST_RPC_URL: str = os.getenv("HOST_RPC_URL", "").strip()
HOST_RPC_TIMEOUT: int = _env_int("HOST_RPC_TIMEOUT", 5)
HEADERS = {"Content-Type": "application/json"}

# Initial state of the two host flags when running standalone.
PROXY_ENABLED: bool = _env_bool("PROXY_ENABLED", False)
ASSOCIATE_NXM: bool = _env_bool("ASSOCIATE_NXM", False)


def validate() -> None:
    if not HANDLER_BINARY:
        raise SystemExit("Missing HANDLER_BINARY")
    if not DEFAULT_PIPE:
        raise SystemExit("DEFAULT_PIPE must not be empty")


__all__ = [
    "DATA_DIR",
    "CONFIG_PATH",
    "HANDLER_BINARY",
    "HOST_EXECUTABLE",
    "HOST_NAME",
    "DEFAULT_PIPE",
    "CHANNEL_DIR",
    "STOP_GRACE_SECONDS",
    "HOST_RPC_URL",
    "HOST_RPC_TIMEOUT",
    "HEADERS",
    "PROXY_ENABLED",
    "ASSOCIATE_NXM",
    "validate",
]
