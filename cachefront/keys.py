"""Key derivation and namespacing."""

import hashlib
from dataclasses import dataclass

from .errors import InvalidKeyError

KEY_PREFIX = "cachefront"
KEY_SEPARATOR = ":"
NO_NAMESPACE = "*"


def hash_string(value: str) -> str:
    """Return the fixed-width digest used for namespaces and keys."""
    return hashlib.md5(value.encode()).hexdigest()


@dataclass(frozen=True)
class DerivedKey:
    """Backend-addressable identifier for a logical key."""

    namespace_hash: str
    key_hash: str | None = None
    composite: str | None = None

    @property
    def is_namespace_only(self) -> bool:
        return self.key_hash is None


def scan_pattern(namespace_hash: str | None = None) -> str:
    """Glob matching every composite key in a namespace, or all of them."""
    if namespace_hash is None:
        return f"{KEY_PREFIX}{KEY_SEPARATOR}*"
    if namespace_hash == NO_NAMESPACE:
        # Match the sentinel literally, not as a wildcard
        namespace_hash = "[*]"
    return f"{KEY_PREFIX}{KEY_SEPARATOR}{namespace_hash}{KEY_SEPARATOR}*"


class KeyCodec:
    """Derives deterministic identifiers from a namespace and a key.

    The namespace digest is memoized and only recomputed when a different
    namespace value is seen.
    """

    def __init__(self):
        self._namespace: str | None = None
        self._namespace_hash: str | None = None

    def namespace_hash(self, namespace: str | None) -> str:
        namespace = namespace if isinstance(namespace, str) else ""
        if self._namespace_hash is None or namespace != self._namespace:
            self._namespace_hash = hash_string(namespace) if namespace else NO_NAMESPACE
            self._namespace = namespace
        return self._namespace_hash

    def derive(self, namespace: str | None, key: str | None) -> DerivedKey:
        """Derive the identifier for ``key``; ``None`` addresses the namespace."""
        namespace_hash = self.namespace_hash(namespace)
        if key is None:
            return DerivedKey(namespace_hash=namespace_hash)

        if not isinstance(key, str) or key == "":
            raise InvalidKeyError("Key must be a non-empty string.")

        key_hash = hash_string(key)
        composite = KEY_SEPARATOR.join((KEY_PREFIX, namespace_hash, key_hash))
        return DerivedKey(
            namespace_hash=namespace_hash, key_hash=key_hash, composite=composite
        )
