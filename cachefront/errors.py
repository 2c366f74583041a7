"""Exception hierarchy for cache operations."""


class CacheError(Exception):
    """Base class for every error raised by cachefront."""


class InvalidArgumentError(CacheError, ValueError):
    """Malformed key, batch, TTL or delta, detected before any backend call."""


class InvalidKeyError(InvalidArgumentError):
    """A key is empty or not a string."""


class KeyExistsError(CacheError):
    """A live entry already exists and overwrite was not requested."""


class NotFoundError(CacheError, KeyError):
    """No live entry exists for the requested key."""

    def __str__(self) -> str:
        # KeyError wraps its message in quotes
        return Exception.__str__(self)


class NotNumericError(CacheError):
    """Increment or decrement requested on a non-numeric entry."""


class BackendUnavailableError(CacheError):
    """The selected backend has not been connected or initialised."""


class BackendTransactionError(CacheError):
    """The underlying store reported an I/O or protocol fault."""


class SerializationError(CacheError):
    """A value could not be encoded to, or decoded from, its stored form."""


class UnsupportedOperationError(CacheError):
    """The operation is not available for the active backend."""
