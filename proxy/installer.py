"""Handshake with the external handler binary.

The binary owns the OS-level ``nxm://`` registration and is driven with a
single mode argument. Exit code 0 means success; anything else, including
failure to launch, means failure. Calls block until the binary exits.
"""
from __future__ import annotations

import enum
import subprocess
from typing import Callable, Optional

from logger import log
from .errors import InstallError

MODE_TEST = "test"
MODE_INSTALL = "install"
MODE_UNINSTALL = "uninstall"


class InstallState(enum.Enum):
    UNREGISTERED = "unregistered"
    PROBING = "probing"
    REGISTERED = "registered"
    FAILED = "failed"


class Installer:
    def __init__(self, binary: str, on_associated: Optional[Callable[[], None]] = None):
        self.binary = binary
        # Called after a successful install so the host drops its own association.
        self._on_associated = on_associated
        self._state = InstallState.UNREGISTERED

    @property
    def state(self) -> InstallState:
        return self._state

    def _set_state(self, new: InstallState):
        if new is not self._state:
            log.debug("installer: %s -> %s", self._state.value, new.value)
        self._state = new

    def _run(self, mode: str) -> None:
        """Run the binary in ``mode``; raise InstallError unless it exits 0."""
        try:
            proc = subprocess.run(
                [self.binary, mode],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as e:
            raise InstallError(mode, str(e)) from e
        if proc.returncode != 0:
            raise InstallError(mode, f"exit code {proc.returncode}")

    def test(self) -> bool:
        try:
            self._run(MODE_TEST)
        except InstallError as e:
            log.info("Proxy is not the registered handler (%s)", e.reason)
            return False
        return True

    def install(self) -> None:
        """Register the proxy; the binary prompts for elevation itself."""
        try:
            self._run(MODE_INSTALL)
        except InstallError:
            self._set_state(InstallState.FAILED)
            raise
        self._set_state(InstallState.REGISTERED)
        log.info("Proxy registered as nxm handler")
        if self._on_associated:
            self._on_associated()

    def uninstall(self) -> None:
        self._run(MODE_UNINSTALL)
        self._set_state(InstallState.UNREGISTERED)
        log.info("Proxy unregistered as nxm handler")

    def ensure_active(self) -> None:
        """Probe first and install only when needed, avoiding a needless elevation prompt."""
        self._set_state(InstallState.PROBING)
        if self.test():
            self._set_state(InstallState.REGISTERED)
            return
        self.install()


__all__ = ["Installer", "InstallState", "MODE_TEST", "MODE_INSTALL", "MODE_UNINSTALL"]
