import asyncio
import os
import socket

import pytest

from proxy.errors import ListenerError
from proxy.listener import IPCListener, channel_path, send_url

URL = "nxm://GameDomain/mods/1/files/2"


class Collector:
    def __init__(self):
        self.urls = []
        self.event = asyncio.Event()

    def __call__(self, url):
        self.urls.append(url)
        self.event.set()


class FakeWriter:
    def __init__(self):
        self.closed = False
    def close(self):
        self.closed = True


def test_channel_path(tmp_path):
    d = str(tmp_path)
    assert channel_path("vortex_download", d) == os.path.join(d, "vortex_download")
    assert channel_path("\\\\?\\pipe\\vortex_download", d) == os.path.join(d, "vortex_download")
    assert channel_path("/run/x.sock", d) == "/run/x.sock"


def test_clean_close_delivers_exactly_once(tmp_path):
    async def _inner():
        got = Collector()
        listener = IPCListener(got, channel_dir=str(tmp_path), grace=0.5)
        await listener.start("vortex_download")
        try:
            await send_url("vortex_download", URL, channel_dir=str(tmp_path))
            await asyncio.wait_for(got.event.wait(), timeout=2)
            await asyncio.sleep(0.05)
        finally:
            await listener.stop()
        return got.urls
    assert asyncio.run(_inner()) == [URL]


def test_transport_error_drops_partial_payload():
    async def _inner():
        got = Collector()
        listener = IPCListener(got, grace=0.1)
        reader = asyncio.StreamReader()
        reader.feed_data(URL[:10].encode())
        reader.set_exception(ConnectionResetError("reset by peer"))
        writer = FakeWriter()
        await listener._handle(reader, writer)
        return got.urls, writer.closed
    urls, closed = asyncio.run(_inner())
    assert urls == [] and closed


def test_invalid_utf8_forwarded_with_replacement():
    async def _inner():
        got = Collector()
        listener = IPCListener(got, grace=0.1)
        reader = asyncio.StreamReader()
        reader.feed_data(b"nxm://skyrim/mods/\xff1")
        reader.feed_eof()
        await listener._handle(reader, FakeWriter())
        return got.urls
    assert asyncio.run(_inner()) == ["nxm://skyrim/mods/\ufffd1"]


def test_callback_error_does_not_escape():
    async def _inner():
        def boom(_url):
            raise RuntimeError("host down")
        listener = IPCListener(boom, grace=0.1)
        reader = asyncio.StreamReader()
        reader.feed_data(URL.encode())
        reader.feed_eof()
        await listener._handle(reader, FakeWriter())
    asyncio.run(_inner())


def test_concurrent_clients(tmp_path):
    async def _inner():
        urls = []
        async def on_url(url):
            await asyncio.sleep(0)
            urls.append(url)
        listener = IPCListener(on_url, channel_dir=str(tmp_path), grace=0.5)
        await listener.start("chan")
        try:
            sent = [f"nxm://game{i}/mods/{i}/files/{i}" for i in range(5)]
            await asyncio.gather(*(send_url("chan", u, channel_dir=str(tmp_path)) for u in sent))
            for _ in range(100):
                if len(urls) == len(sent):
                    break
                await asyncio.sleep(0.01)
        finally:
            await listener.stop()
        return sorted(sent), sorted(urls)
    sent, urls = asyncio.run(_inner())
    assert urls == sent


def test_second_bind_is_refused(tmp_path):
    async def _inner():
        first = IPCListener(Collector(), channel_dir=str(tmp_path), grace=0.1)
        second = IPCListener(Collector(), channel_dir=str(tmp_path), grace=0.1)
        await first.start("vortex_download")
        try:
            with pytest.raises(ListenerError):
                await second.start("vortex_download")
            assert not second.running
        finally:
            await first.stop()
    asyncio.run(_inner())


def test_stale_socket_file_is_reused(tmp_path):
    path = str(tmp_path / "vortex_download")
    stale = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    stale.bind(path)
    stale.close()  # file stays, nobody listening
    assert os.path.exists(path)

    async def _inner():
        got = Collector()
        listener = IPCListener(got, channel_dir=str(tmp_path), grace=0.1)
        await listener.start("vortex_download")
        try:
            await send_url("vortex_download", URL, channel_dir=str(tmp_path))
            await asyncio.wait_for(got.event.wait(), timeout=2)
        finally:
            await listener.stop()
        return got.urls
    assert asyncio.run(_inner()) == [URL]
    assert not os.path.exists(path)


def test_stop_does_not_wait_for_idle_client(tmp_path):
    async def _inner():
        got = Collector()
        listener = IPCListener(got, channel_dir=str(tmp_path), grace=0.1)
        await listener.start("chan")
        _reader, writer = await asyncio.open_unix_connection(str(tmp_path / "chan"))
        writer.write(b"nxm://half")
        await writer.drain()
        await asyncio.sleep(0.05)
        await asyncio.wait_for(listener.stop(), timeout=2)
        writer.close()
        return got.urls, listener.running
    urls, running = asyncio.run(_inner())
    assert urls == [] and running is False


def test_regular_file_at_channel_path_is_kept(tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("keep me")

    async def _inner():
        listener = IPCListener(Collector(), channel_dir=str(tmp_path), grace=0.1)
        with pytest.raises(ListenerError):
            await listener.start("notes.txt")
        return listener.running
    assert asyncio.run(_inner()) is False
    assert notes.read_text() == "keep me"
