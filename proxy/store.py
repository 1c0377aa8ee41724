"""Loading and saving of the TOML routing document."""
from __future__ import annotations

import os
import tempfile
import tomllib

import tomli_w

from logger import log
from .errors import StorageError
from .model import ProxyConfig, default_config


class ConfigStore:
    """Reads and writes one ``config.toml``.

    ``load`` never fails: a missing or unreadable document is a first run,
    so the default is written out and returned. ``save`` replaces the whole
    file atomically and raises ``StorageError`` when it cannot.
    """

    def __init__(self, path: str, executable: str, host_name: str = "Vortex", pipe: str = "vortex_download"):
        self.path = path
        self._executable = executable
        self._host_name = host_name
        self._pipe = pipe

    def default(self) -> ProxyConfig:
        return default_config(self._executable, self._host_name, self._pipe)

    def load(self) -> ProxyConfig:
        try:
            with open(self.path, "rb") as fh:
                cfg = ProxyConfig.from_dict(tomllib.load(fh))
        except (OSError, tomllib.TOMLDecodeError, TypeError, UnicodeDecodeError) as e:
            log.warning("Could not read %s (%s); writing default configuration", self.path, e)
            cfg = self.default()
            self.save(cfg)
            return cfg
        for issue in cfg.problems():
            log.warning("config: %s", issue)
        log.debug("Loaded %s (%d games, %d managers)", self.path, len(cfg.games), len(cfg.managers))
        return cfg

    def save(self, cfg: ProxyConfig) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            data = tomli_w.dumps(cfg.to_dict())
            fd, tmp_path = tempfile.mkstemp(prefix=".config-", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(data)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError) as e:
            raise StorageError(f"Failed to save {self.path}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass
        log.info("Saved configuration to %s", self.path)


__all__ = ["ConfigStore"]
