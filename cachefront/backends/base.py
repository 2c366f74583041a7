"""Abstract base class for backend adapters."""

from abc import ABC, abstractmethod

from ..entry import Entry
from ..keys import DerivedKey


class BackendAdapter(ABC):
    """Single-key primitives against one storage substrate.

    Every primitive is a coroutine, including those of in-process adapters,
    so the facade can treat all backends alike.
    """

    name: str = "backend"
    verbose: bool = False

    @abstractmethod
    async def put(self, key: DerivedKey, entry: Entry, overwrite: bool) -> None:
        """Store an entry; raise KeyExistsError on a live collision without overwrite."""
        pass

    @abstractmethod
    async def get(self, key: DerivedKey) -> Entry:
        """Return the live entry or raise NotFoundError."""
        pass

    @abstractmethod
    async def exists(self, key: DerivedKey) -> bool:
        """Check if a live entry exists."""
        pass

    @abstractmethod
    async def delete(self, key: DerivedKey) -> None:
        """Remove an entry. Missing keys are not an error."""
        pass

    @abstractmethod
    async def increment(self, key: DerivedKey, delta: int | float) -> None:
        """Add delta to a numeric entry."""
        pass

    @abstractmethod
    async def clear(self, namespace_hash: str | None = None) -> None:
        """Remove every entry in a namespace, or everything when None."""
        pass

    async def probe(self) -> bool:
        """Actively check that the store answers."""
        return True

    async def close(self) -> None:
        """Release connections held by the adapter."""
        return None
