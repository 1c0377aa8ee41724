from __future__ import annotations

import asyncio
import signal

import config
import host
from logger import log
from proxy.dispatcher import Dispatcher
from proxy.installer import Installer
from proxy.store import ConfigStore


def build_store() -> ConfigStore:
    return ConfigStore(config.CONFIG_PATH, config.HOST_EXECUTABLE, config.HOST_NAME, config.DEFAULT_PIPE)


def build_dispatcher() -> Dispatcher:
    return Dispatcher(
        build_store(),
        Installer(config.HANDLER_BINARY),
        on_url=host.start_download_url,
        notify=host.notify,
        set_associated=host.set_associated,
        on_enabled_changed=host.set_proxy_enabled,
        default_pipe=config.DEFAULT_PIPE,
    )


def main() -> None:
    asyncio.run(_main())


async def _main():
    config.validate()
    dispatcher = build_dispatcher()
    await dispatcher.start()
    shutdown_event = asyncio.Event()
    _install_signal_handlers(asyncio.get_running_loop(), shutdown_event)
    # Competing flag first so a host that already owns nxm links is respected.
    dispatcher.set_competing(config.ASSOCIATE_NXM)
    dispatcher.set_enabled(config.PROXY_ENABLED)
    log.info("NXM proxy running (config %s)", config.CONFIG_PATH)
    try:
        await shutdown_event.wait()
    finally:
        log.info("Shutting down gracefully...")
        await dispatcher.close()


def _install_signal_handlers(loop, shutdown_event: asyncio.Event):
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_event.set)
        except NotImplementedError:  # pragma: no cover
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(shutdown_event.set))


if __name__ == "__main__":  # pragma: no cover
    main()
