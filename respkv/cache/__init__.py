"""Cache module for respkv."""

from .store import KVStore, parse_integer

__all__ = ["KVStore", "parse_integer"]
