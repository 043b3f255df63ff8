"""
Key-Value Store Module

This module implements the core key-value storage functionality:
- Basic operations (set, get, delete, exists)
- TTL (Time-To-Live) support with lazy and active expiration
- Integer counters (increment, decrement)
"""

import math
import re
import threading
import time
from typing import Callable, Dict, Any, Iterable, Optional, Tuple

from ..errors import NotAnInteger

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INTEGER_RE = re.compile(r"-?[0-9]+")


def parse_integer(value: str) -> int:
    """
    Parse a base-10 signed 64-bit integer.

    Only an optional leading minus sign followed by ASCII digits is
    accepted. Whitespace, a leading ``+``, underscores and trailing
    garbage are all rejected.

    Raises:
        NotAnInteger: If the string is not a valid integer or is out of range
    """
    if not _INTEGER_RE.fullmatch(value):
        raise NotAnInteger()

    number = int(value)
    if number < INT64_MIN or number > INT64_MAX:
        raise NotAnInteger()
    return number


class KVStore:
    """
    In-memory key-value store with TTL support.

    This class provides O(1) average-case time complexity for:
    - set: Insert or update a key-value pair
    - get: Retrieve a value by key
    - delete: Remove a key-value pair
    - exists: Check if a key exists

    Internal Storage:
        _entries: key -> value
        _expirations: key -> absolute expiry instant on the store clock.
            A key without an entry here never expires.

    A key whose expiry instant is at or before the current time is
    treated as absent by every operation and is evicted on access.

    All operations are serialized by a single lock, so read-modify-write
    sequences (increment, set_expiry) are atomic across threads.

    Attributes:
        clock: Callable returning the current time in seconds
    """

    def __init__(self, clock: Callable[[], float] = None):
        """
        Initialize the KV store.

        Args:
            clock: Time source in seconds (default time.monotonic)
        """
        self.clock = clock if clock is not None else time.monotonic

        self._entries: Dict[str, str] = {}
        self._expirations: Dict[str, float] = {}
        self._lock = threading.RLock()

    def _is_expired(self, key: str, now: float) -> bool:
        expires_at = self._expirations.get(key)
        return expires_at is not None and expires_at <= now

    def _evict(self, key: str) -> None:
        self._entries.pop(key, None)
        self._expirations.pop(key, None)

    def _lookup(self, key: str) -> Optional[str]:
        """Return the live value for key, evicting it if it has expired."""
        if key not in self._entries:
            return None

        if self._is_expired(key, self.clock()):
            # Lazy expiration
            self._evict(key)
            return None

        return self._entries[key]

    def get(self, key: str) -> Optional[str]:
        """
        Retrieve the value for a given key.

        Args:
            key: The key to look up

        Returns:
            The value if found and not expired, None otherwise.
            An empty string is a valid value and is returned as is.
        """
        with self._lock:
            return self._lookup(key)

    def set(self, key: str, value: str) -> None:
        """
        Insert or overwrite a key-value pair.

        Any expiry previously set on the key is cleared.

        Args:
            key: The key to store
            value: The value to associate with the key
        """
        with self._lock:
            self._entries[key] = value
            self._expirations.pop(key, None)

    def mset(self, pairs: Iterable[Tuple[str, str]]) -> None:
        """Set several key-value pairs at once, clearing their expiries."""
        with self._lock:
            for key, value in pairs:
                self._entries[key] = value
                self._expirations.pop(key, None)

    def delete(self, key: str) -> bool:
        """
        Delete a key-value pair.

        Args:
            key: The key to delete

        Returns:
            True if a live key was deleted, False if the key didn't
            exist or had already expired
        """
        with self._lock:
            if self._lookup(key) is None:
                return False

            self._evict(key)
            return True

    def exists(self, key: str) -> bool:
        """
        Check if a key exists (and is not expired).

        Args:
            key: The key to check

        Returns:
            True if key exists and is not expired, False otherwise
        """
        with self._lock:
            return self._lookup(key) is not None

    def set_expiry(self, key: str, seconds: int) -> bool:
        """
        Set a key to expire after the given number of seconds.

        A non-positive number of seconds makes the key expire immediately.

        Args:
            key: The key to expire
            seconds: Seconds from now until the key expires

        Returns:
            True if the expiry was set, False if the key does not exist
        """
        with self._lock:
            if self._lookup(key) is None:
                return False

            self._expirations[key] = self.clock() + seconds
            return True

    def time_to_live(self, key: str) -> int:
        """
        Get the remaining time to live of a key.

        Returns:
            -2 if the key does not exist,
            -1 if the key exists but has no expiry,
            otherwise the remaining seconds rounded up
        """
        with self._lock:
            if self._lookup(key) is None:
                return -2

            expires_at = self._expirations.get(key)
            if expires_at is None:
                return -1

            return max(0, math.ceil(expires_at - self.clock()))

    def increment(self, key: str) -> int:
        """
        Increment the integer value of a key by one.

        A missing key is treated as 0. The expiry of an existing key is kept.

        Returns:
            The value after the increment

        Raises:
            NotAnInteger: If the stored value is not an integer or the
                result would overflow. The stored value is left unchanged.
        """
        return self._add(key, 1)

    def decrement(self, key: str) -> int:
        """Decrement the integer value of a key by one. See increment()."""
        return self._add(key, -1)

    def _add(self, key: str, delta: int) -> int:
        with self._lock:
            current = self._lookup(key)
            number = parse_integer(current) if current is not None else 0

            result = number + delta
            if result < INT64_MIN or result > INT64_MAX:
                raise NotAnInteger("increment or decrement would overflow")

            self._entries[key] = str(result)
            return result

    def size(self) -> int:
        """
        Get the current number of keys in the store.

        Note: This may include expired keys that haven't been cleaned up yet.
        """
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Remove all keys from the store."""
        with self._lock:
            self._entries.clear()
            self._expirations.clear()

    def cleanup_expired(self) -> int:
        """
        Remove all expired keys from the store (active expiration).

        Called periodically by the server's background sweep.

        Returns:
            Number of keys removed
        """
        with self._lock:
            now = self.clock()
            to_delete = [k for k, exp in self._expirations.items() if exp <= now]
            for key in to_delete:
                self._evict(key)
            return len(to_delete)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing:
            - total_keys: Total keys in store
            - expired_keys: Count of expired (but not yet cleaned) keys
            - active_keys: Count of non-expired keys
            - volatile_keys: Count of keys with an expiry set
        """
        with self._lock:
            now = self.clock()
            total = len(self._entries)
            expired = sum(1 for exp in self._expirations.values() if exp <= now)

            return {
                "total_keys": total,
                "expired_keys": expired,
                "active_keys": total - expired,
                "volatile_keys": len(self._expirations) - expired,
            }
