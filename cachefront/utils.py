"""Utility functions for batch operations."""

import asyncio
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any

from .errors import InvalidArgumentError, InvalidKeyError


def validate_key(key: Any) -> str:
    """Ensure key is a non-empty string."""
    if not isinstance(key, str) or key == "":
        raise InvalidKeyError("Key must be a non-empty string.")
    return key


def validate_keys(keys: Iterable[str] | Mapping[str, Any]) -> list[str]:
    """Validate a whole batch before any of it reaches a backend."""
    if isinstance(keys, (str, bytes)) or not isinstance(keys, Iterable):
        raise InvalidArgumentError("Keys must be a collection of strings.")

    keys = list(keys)
    if not keys:
        raise InvalidArgumentError("At least one key is required.")
    for key in keys:
        if not isinstance(key, str) or key == "":
            raise InvalidKeyError("Invalid key found.")
    return keys


def validate_number(value: Any, name: str) -> int | float:
    """Ensure value is an int or float (bools rejected)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(f"{name} must be a number, got {value!r}.")
    return value


async def gather_in_order(awaitables: Iterable[Awaitable[Any]]) -> list[Any]:
    """Run awaitables concurrently and return their results in input order.

    Every awaitable runs to completion. If any failed, the failure of the
    earliest one in input order is raised, independent of completion order.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results
