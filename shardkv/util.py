"""Key-to-shard assignment."""

_FNV32_OFFSET_BASIS = 0x811C9DC5
_FNV32_PRIME = 0x01000193
_MASK32 = 0xFFFFFFFF


def _fnv1_32(data: bytes) -> int:
    """Return the 32-bit FNV-1 hash of ``data``."""
    value = _FNV32_OFFSET_BASIS
    for byte in data:
        value = (value * _FNV32_PRIME) & _MASK32
        value ^= byte
    return value


def shard_for_key(key: str, num_shards: int) -> int:
    """Return the 1-indexed shard that ``key`` belongs to."""
    if num_shards < 1:
        raise ValueError(f"num_shards must be at least 1, got {num_shards}")
    return _fnv1_32(key.encode("utf-8")) % num_shards + 1