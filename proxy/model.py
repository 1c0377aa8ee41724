from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

CATCH_ALL = "_"
URL_PLACEHOLDER = "%1"
TABLES = ("games", "managers", "pipes")


@dataclass(slots=True)
class ProxyConfig:
    """The persisted routing document.

    ``games`` maps a game domain to a manager id (``"_"`` catches every game
    not listed), ``managers`` maps a manager id to its launch command
    template and ``pipes`` maps a manager id to its local channel name.
    Dangling references are kept as loaded; see ``problems``.
    """

    games: Dict[str, str] = field(default_factory=dict)
    managers: Dict[str, str] = field(default_factory=dict)
    pipes: Dict[str, str] = field(default_factory=dict)

    def copy(self) -> "ProxyConfig":
        return ProxyConfig(
            games=copy.deepcopy(self.games),
            managers=copy.deepcopy(self.managers),
            pipes=copy.deepcopy(self.pipes),
        )

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {name: dict(getattr(self, name)) for name in TABLES}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProxyConfig":
        """Build from a parsed document.

        Missing tables become empty mappings. Anything present is taken as
        is: a table that is not a mapping is a parse-level failure and
        raises ``TypeError`` so the caller can fall back to the default.
        """
        if not isinstance(data, dict):
            raise TypeError(f"document must be a table, got {type(data).__name__}")
        tables = {}
        for name in TABLES:
            value = data.get(name, {})
            if not isinstance(value, dict):
                raise TypeError(f"'{name}' must be a table, got {type(value).__name__}")
            tables[name] = dict(value)
        return cls(**tables)

    def problems(self) -> List[str]:
        """Human readable consistency issues; informational only."""
        issues: List[str] = []
        for name in TABLES:
            for key, value in getattr(self, name).items():
                if not key:
                    issues.append(f"{name}: empty identifier")
                if not isinstance(value, str):
                    issues.append(f"{name}.{key}: expected string, got {type(value).__name__}")
        for game, manager in self.games.items():
            if isinstance(manager, str) and manager not in self.managers:
                issues.append(f"games.{game}: unknown manager '{manager}'")
        for manager in self.pipes:
            if manager not in self.managers:
                issues.append(f"pipes.{manager}: unknown manager")
        return issues


def default_config(executable: str, host_name: str = "Vortex", pipe: str = "vortex_download") -> ProxyConfig:
    """First-run document: the host itself handles every game."""
    return ProxyConfig(
        games={CATCH_ALL: host_name},
        managers={host_name: f'"{executable}" --download {URL_PLACEHOLDER}'},
        pipes={host_name: pipe},
    )


def sorted_games(games: Iterable[str]) -> List[str]:
    """Game ids alphabetically, with the catch-all entry last."""
    return sorted(games, key=lambda g: (g == CATCH_ALL, g.lower(), g))


def expand_command(template: str, url: str) -> str:
    return template.replace(URL_PLACEHOLDER, url)


__all__ = [
    "CATCH_ALL",
    "URL_PLACEHOLDER",
    "ProxyConfig",
    "default_config",
    "sorted_games",
    "expand_command",
]
