"""Process-wide lifecycle of the proxy.

The host drives two flags: whether the proxy is enabled, and whether its
own (competing) nxm association is active. Both arrive as events on a
single queue and are applied one at a time by ``_run``, so transitions
never interleave. The live routing document is owned here; editors get a
copy through ``snapshot`` and hand back a full replacement via ``submit``.
Host callbacks may block on RPC, so they run in worker threads.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

from logger import log
from .errors import InstallError, ListenerError, StorageError
from .installer import Installer
from .listener import IPCListener
from .model import CATCH_ALL, ProxyConfig
from .store import ConfigStore

_ENABLED = "enabled"
_COMPETING = "competing"


def next_enabled(own: bool, competing: bool) -> bool:
    """At most one of the proxy and the host's own association is on."""
    return own and not competing


def _noop(*_a, **_k) -> None:
    return None


class Dispatcher:
    def __init__(
        self,
        store: ConfigStore,
        installer: Installer,
        *,
        on_url: Callable[[str], None],
        notify: Callable[[str, str], None] = _noop,
        set_associated: Callable[[bool], None] = _noop,
        on_enabled_changed: Callable[[bool], None] = _noop,
        default_pipe: str = "vortex_download",
        listener_factory: Callable[..., IPCListener] = IPCListener,
    ):
        self._store = store
        self._installer = installer
        self._on_url = on_url
        self._notify = notify
        self._set_associated = set_associated
        self._on_enabled_changed = on_enabled_changed
        self._default_pipe = default_pipe
        self._listener_factory = listener_factory

        self.enabled = False
        self.competing = False
        self._config: Optional[ProxyConfig] = None
        self._listener: Optional[IPCListener] = None
        self._events: asyncio.Queue[tuple[str, bool]] | None = None
        self._loop_task: asyncio.Task | None = None
        self._save_lock = asyncio.Lock()

    # Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        try:
            self._config = await asyncio.to_thread(self._store.load)
        except StorageError as e:
            # Default could not be persisted; keep running on the in-memory copy.
            await asyncio.to_thread(self._notify, "Failed to save NXM proxy configuration", str(e))
            self._config = self._store.default()
        self._events = asyncio.Queue()
        self._loop_task = asyncio.get_running_loop().create_task(self._run())

    async def close(self) -> None:
        if self._loop_task:
            self._loop_task.cancel()
            await asyncio.gather(self._loop_task, return_exceptions=True)
            self._loop_task = None
        await self._stop_listener()

    @property
    def listening(self) -> bool:
        return self._listener is not None and self._listener.running

    # Inbound signals -------------------------------------------------------

    def set_enabled(self, flag: bool) -> None:
        self._post(_ENABLED, flag)

    def set_competing(self, flag: bool) -> None:
        self._post(_COMPETING, flag)

    def _post(self, kind: str, flag: bool) -> None:
        if self._events is None:
            raise RuntimeError("dispatcher not started")
        self._events.put_nowait((kind, bool(flag)))

    async def drain(self) -> None:
        """Wait until every posted signal has been applied."""
        if self._events is not None:
            await self._events.join()

    async def _run(self):
        assert self._events is not None
        while True:
            kind, flag = await self._events.get()
            try:
                if kind == _ENABLED:
                    await self._apply_enabled(flag)
                else:
                    await self._apply_competing(flag)
            except Exception:  # noqa: BLE001
                log.exception("Failed to apply %s=%s", kind, flag)
            finally:
                self._events.task_done()

    async def _apply_enabled(self, flag: bool):
        if flag == self.enabled:
            return
        self.enabled = flag
        log.info("NXM proxy %s", "enabled" if flag else "disabled")
        if not flag:
            await self._stop_listener()
            return
        try:
            # Blocking subprocess calls stay off the loop so the listener keeps accepting.
            await asyncio.to_thread(self._installer.ensure_active)
        except InstallError as e:
            await asyncio.to_thread(self._notify, "Failed to activate NXM proxy", str(e))
            return
        if self.competing:
            self.competing = False
            await asyncio.to_thread(self._set_associated, False)
        await self._start_listener()

    async def _apply_competing(self, flag: bool):
        self.competing = flag
        wanted = next_enabled(self.enabled, flag)
        if wanted != self.enabled:
            log.info("Host association enabled, disabling NXM proxy")
            await self._apply_enabled(wanted)
            await asyncio.to_thread(self._on_enabled_changed, wanted)

    # Listener --------------------------------------------------------------

    def self_pipe(self) -> str:
        """Channel of the manager handling the catch-all route."""
        cfg = self._config
        if cfg is not None:
            manager = cfg.games.get(CATCH_ALL)
            pipe = cfg.pipes.get(manager) if isinstance(manager, str) else None
            if isinstance(pipe, str) and pipe:
                return pipe
        return self._default_pipe

    async def _start_listener(self):
        if self.listening:
            return
        listener = self._listener_factory(self._received)
        try:
            await listener.start(self.self_pipe())
        except ListenerError as e:
            await asyncio.to_thread(self._notify, "Failed to listen for NXM downloads", str(e))
            return
        self._listener = listener

    async def _stop_listener(self):
        listener, self._listener = self._listener, None
        if listener is not None:
            await listener.stop()

    async def _received(self, url: str):
        if not self.enabled:
            log.debug("Proxy disabled, ignoring url %s", url)
            return
        await asyncio.to_thread(self._on_url, url)

    # Configuration ---------------------------------------------------------

    def snapshot(self) -> ProxyConfig:
        if self._config is None:
            raise RuntimeError("dispatcher not started")
        return self._config.copy()

    async def submit(self, cfg: ProxyConfig) -> None:
        """Replace and persist the live document; last submission wins."""
        new = cfg.copy()
        async with self._save_lock:
            old_pipe = self.self_pipe()
            try:
                await asyncio.to_thread(self._store.save, new)
            except StorageError as e:
                await asyncio.to_thread(self._notify, "Failed to save NXM proxy configuration", str(e))
                raise
            self._config = new
            if self.listening and self.self_pipe() != old_pipe:
                log.info("Self channel changed %s -> %s, rebinding", old_pipe, self.self_pipe())
                await self._stop_listener()
                await self._start_listener()


__all__ = ["Dispatcher", "next_enabled"]
