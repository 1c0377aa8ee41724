"""Routing core: document model, storage, installer handshake, listener, dispatcher."""

from .model import ProxyConfig, default_config, sorted_games, CATCH_ALL  # noqa: F401
from .routes import RouteTable  # noqa: F401
from .store import ConfigStore  # noqa: F401
from .installer import Installer, InstallState  # noqa: F401
from .listener import IPCListener, send_url  # noqa: F401
from .dispatcher import Dispatcher, next_enabled  # noqa: F401
