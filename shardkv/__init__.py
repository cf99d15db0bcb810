"""Shard maps, key-to-shard hashing and a read/write consistency checker for a sharded key-value store."""

__version__ = "0.1.0"