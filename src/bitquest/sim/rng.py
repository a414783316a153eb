from __future__ import annotations

import hashlib

DRAW_MANTISSA_BITS = 53


def derive_stream_seed(master_seed: int, stream_name: str) -> int:
    """Derive a deterministic 64-bit value from (master_seed, stream_name)."""
    digest = hashlib.sha256(f"{master_seed}:{stream_name}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=False)


def unit_draw(master_seed: int, key: str) -> float:
    """Uniform draw in [0.0, 1.0) keyed by (master_seed, key)."""
    bits = derive_stream_seed(master_seed, key) >> (64 - DRAW_MANTISSA_BITS)
    return bits / float(1 << DRAW_MANTISSA_BITS)
