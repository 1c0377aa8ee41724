"""Local channel server receiving one download URL per connection.

A client connects, writes the URL and closes its end. Only a clean
end-of-stream makes the payload count: if the transfer breaks half way the
partial text is dropped, the sender is expected to try again.
"""
from __future__ import annotations

import asyncio
import inspect
import os
import socket
import stat
from typing import Any, Awaitable, Callable, Optional, Set, Union

import config
from logger import log
from .errors import ListenerError

UrlCallback = Callable[[str], Union[None, Awaitable[Any]]]

_PIPE_PREFIXES = ("\\\\?\\pipe\\", "\\\\.\\pipe\\")


def channel_path(address: str, channel_dir: Optional[str] = None) -> str:
    """Map a channel name (as stored in ``pipes``) to a socket path."""
    for prefix in _PIPE_PREFIXES:
        if address.startswith(prefix):
            address = address[len(prefix):]
            break
    if os.path.isabs(address):
        return address
    return os.path.join(channel_dir or config.CHANNEL_DIR, address)


def _require_unix_sockets():
    if not hasattr(socket, "AF_UNIX"):  # pragma: no cover - platform specific
        raise ListenerError("local channels need Unix domain socket support")


async def _address_in_use(path: str) -> bool:
    """True if a live server answers at ``path``; stale socket files are removed.

    Anything at ``path`` that is not a socket is left alone and refused.
    """
    try:
        mode = os.stat(path).st_mode
    except FileNotFoundError:
        return False
    except OSError as e:
        raise ListenerError(f"cannot inspect channel path {path}: {e}") from e
    if not stat.S_ISSOCK(mode):
        raise ListenerError(f"channel path {path} exists and is not a socket")
    try:
        _reader, writer = await asyncio.open_unix_connection(path)
    except OSError:
        try:
            os.unlink(path)
            log.debug("Removed stale channel %s", path)
        except OSError:
            pass
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:  # pragma: no cover
        pass
    return True


class IPCListener:
    def __init__(self, on_url: UrlCallback, channel_dir: Optional[str] = None, grace: Optional[float] = None):
        self._on_url = on_url
        self._channel_dir = channel_dir
        self._grace = config.STOP_GRACE_SECONDS if grace is None else grace
        self._server: asyncio.AbstractServer | None = None
        self._handlers: Set[asyncio.Task] = set()
        self.path: str | None = None

    @property
    def running(self) -> bool:
        return self._server is not None

    async def start(self, address: str) -> "IPCListener":
        """Bind ``address``; raises ListenerError if it is taken or cannot be bound."""
        if self._server is not None:
            raise ListenerError(f"listener already bound to {self.path}")
        _require_unix_sockets()
        path = channel_path(address, self._channel_dir)
        if await _address_in_use(path):
            raise ListenerError(f"channel {address!r} is already in use ({path})")
        try:
            self._server = await asyncio.start_unix_server(self._accept, path=path)
        except OSError as e:
            raise ListenerError(f"cannot bind channel {address!r}: {e}") from e
        self.path = path
        log.info("Listening for download urls on %s", path)
        return self

    def _accept(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        task = asyncio.get_running_loop().create_task(self._handle(reader, writer))
        self._handlers.add(task)
        task.add_done_callback(self._handlers.discard)

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        log.debug("dl client connected")
        try:
            data = await reader.read()
        except (OSError, asyncio.IncompleteReadError) as e:
            log.debug("Dropping partial payload after transport error: %s", e)
            return
        finally:
            writer.close()
        url = data.decode("utf-8", errors="replace")
        if not url:
            return
        log.info("got url: %s", url)
        await self._deliver(url)

    async def _deliver(self, url: str):
        try:
            result = self._on_url(url)
            if inspect.isawaitable(result):
                await result
        except Exception:  # noqa: BLE001
            log.exception("url callback failed for %s", url)

    async def stop(self):
        """Release the channel; handlers still reading get ``grace`` seconds."""
        server, self._server = self._server, None
        if server is None:
            return
        server.close()
        pending = [t for t in self._handlers if not t.done()]
        if pending:
            _done, still = await asyncio.wait(pending, timeout=self._grace)
            for task in still:
                task.cancel()
            await asyncio.gather(*still, return_exceptions=True)
        try:
            await asyncio.wait_for(server.wait_closed(), timeout=self._grace)
        except asyncio.TimeoutError:
            log.warning("Listener did not close within %.1fs", self._grace)
        if self.path:
            try:
                os.unlink(self.path)
            except OSError:
                pass
        log.info("Stopped listening on %s", self.path)
        self.path = None


async def send_url(address: str, url: str, channel_dir: Optional[str] = None) -> None:
    """Deliver ``url`` to the listener bound at ``address``."""
    _require_unix_sockets()
    path = channel_path(address, channel_dir)
    _reader, writer = await asyncio.open_unix_connection(path)
    try:
        writer.write(url.encode("utf-8"))
        await writer.drain()
    finally:
        writer.close()
        await writer.wait_closed()


__all__ = ["IPCListener", "channel_path", "send_url"]
