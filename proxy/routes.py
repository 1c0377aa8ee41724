"""Edit and lookup operations over a ProxyConfig.

Every edit returns a new document and leaves its input untouched, so the
caller decides when (and whether) to commit it through ``ConfigStore``.
Nothing here validates references between tables: a game may point at a
manager that does not exist, and removing a manager does not cascade.
"""
from __future__ import annotations

from typing import List, Optional

from .model import CATCH_ALL, ProxyConfig, expand_command, sorted_games


def _require_id(kind: str, ident: str) -> None:
    if not ident:
        raise ValueError(f"{kind} id must not be empty")


class RouteTable:
    def __init__(self, cfg: ProxyConfig):
        self._cfg = cfg.copy()

    @property
    def config(self) -> ProxyConfig:
        return self._cfg.copy()

    # Edits ---------------------------------------------------------------

    def set_manager(self, manager_id: str, command: str, pipe: Optional[str] = None) -> ProxyConfig:
        _require_id("manager", manager_id)
        cfg = self._cfg.copy()
        cfg.managers[manager_id] = command
        if pipe:
            cfg.pipes[manager_id] = pipe
        else:
            cfg.pipes.pop(manager_id, None)
        return cfg

    def remove_manager(self, manager_id: str) -> ProxyConfig:
        cfg = self._cfg.copy()
        cfg.managers.pop(manager_id, None)
        cfg.pipes.pop(manager_id, None)
        return cfg

    def set_game(self, game_id: str, manager_id: str) -> ProxyConfig:
        cfg = self._cfg.copy()
        cfg.games[game_id] = manager_id
        return cfg

    def remove_game(self, game_id: str) -> ProxyConfig:
        cfg = self._cfg.copy()
        cfg.games.pop(game_id, None)
        return cfg

    def rename_game(self, old_id: str, new_id: str) -> ProxyConfig:
        _require_id("game", new_id)
        cfg = self._cfg.copy()
        if old_id in cfg.games and old_id != new_id:
            cfg.games[new_id] = cfg.games.pop(old_id)
        return cfg

    def rename_manager(self, old_id: str, new_id: str) -> ProxyConfig:
        """Rename a manager, carrying its pipe and the games routed to it."""
        _require_id("manager", new_id)
        cfg = self._cfg.copy()
        if old_id not in cfg.managers or old_id == new_id:
            return cfg
        cfg.managers[new_id] = cfg.managers.pop(old_id)
        if old_id in cfg.pipes:
            cfg.pipes[new_id] = cfg.pipes.pop(old_id)
        for game, manager in cfg.games.items():
            if manager == old_id:
                cfg.games[game] = new_id
        return cfg

    # Lookups -------------------------------------------------------------

    def games(self) -> List[str]:
        return sorted_games(self._cfg.games)

    def managers(self) -> List[str]:
        return sorted(self._cfg.managers, key=str.lower)

    def resolve(self, game_id: str) -> Optional[str]:
        """Manager for ``game_id``, falling back to the catch-all; None if neither."""
        if game_id in self._cfg.games:
            return self._cfg.games[game_id]
        return self._cfg.games.get(CATCH_ALL)

    def pipe_for(self, manager_id: str) -> Optional[str]:
        return self._cfg.pipes.get(manager_id)

    def launch_command(self, game_id: str, url: str) -> Optional[str]:
        manager = self.resolve(game_id)
        if not isinstance(manager, str):
            return None
        template = self._cfg.managers.get(manager)
        if not isinstance(template, str):
            return None
        return expand_command(template, url)


__all__ = ["RouteTable"]
