"""Backend strategy identifiers."""

import importlib.util
from enum import IntEnum

from .errors import InvalidArgumentError


class Strategy(IntEnum):
    """Storage substrates a Cache can dispatch to."""

    LOCAL = 1
    SHARED = 2
    REDIS = 4
    MEMCACHED = 5
    SQLITE = 6
    FILE = 7

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: "str | int | Strategy") -> "Strategy":
        """Resolve a strategy from its name or numeric code."""
        if isinstance(value, Strategy):
            return value
        if isinstance(value, str):
            name = value.strip().lower()
            if name.isdigit():
                return cls.parse(int(name))
            name = _ALIASES.get(name, name)
            try:
                return cls[name.upper()]
            except KeyError:
                raise InvalidArgumentError(f"Unknown strategy: {value}") from None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                raise InvalidArgumentError(f"Unknown strategy: {value}") from None
        raise InvalidArgumentError(f"Unknown strategy: {value!r}")


_ALIASES = {"sqlite3": "sqlite", "internal": "local", "internal_shared": "shared"}

# Client library each external strategy needs
_DRIVERS = {
    Strategy.REDIS: "redis",
    Strategy.MEMCACHED: "pymemcache",
    Strategy.SQLITE: "aiosqlite",
}


def _driver_installed(strategy: Strategy) -> bool:
    module = _DRIVERS.get(strategy)
    return module is None or importlib.util.find_spec(module) is not None


def supported_strategies(numeric: bool = False) -> list[str] | list[int]:
    """List strategies whose client library is importable."""
    strategies = [s for s in Strategy if _driver_installed(s)]
    if numeric:
        return [int(s) for s in strategies]
    return [s.label for s in strategies]


def is_supported_strategy(value: str | int) -> bool:
    """Check whether a strategy name or code is known and usable."""
    try:
        strategy = Strategy.parse(value)
    except InvalidArgumentError:
        return False
    return _driver_installed(strategy)
