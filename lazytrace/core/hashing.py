"""
Hash primitives for IR node identity.

All hashes are unsigned 64-bit integers. They must be stable across
processes (Python's builtin ``hash`` is salted for strings), so values are
digested with blake2b and then mixed with ``hash_combine``.
"""

import hashlib
import struct
from enum import Enum
from typing import Any, Iterable

import torch

MASK_64 = 0xFFFFFFFFFFFFFFFF
_GOLDEN = 0x9E3779B97F4A7C15
_MULTIPLIER = 0x27D4EB2F165667C5


def hash_combine(a: int, b: int) -> int:
    """Mix ``b`` into ``a``. Order sensitive: combine(a, b) != combine(b, a)."""
    a &= MASK_64
    b &= MASK_64
    return (a ^ ((b * _MULTIPLIER) + _GOLDEN + (a << 6) + (a >> 2))) & MASK_64


def hash_bytes(data: bytes) -> int:
    """Digest raw bytes into a 64-bit hash."""
    return int.from_bytes(hashlib.blake2b(data, digest_size=8).digest(), 'little')


def _encode(value: Any) -> bytes:
    # Type tags keep 1, 1.0, True and "1" apart
    if value is None:
        return b'N'
    if isinstance(value, bool):
        return b'B1' if value else b'B0'
    if isinstance(value, int):
        return b'I' + str(value).encode('ascii')
    if isinstance(value, float):
        return b'F' + struct.pack('<d', value)
    if isinstance(value, str):
        return b'S' + value.encode('utf-8')
    if isinstance(value, bytes):
        return b'Y' + value
    if isinstance(value, torch.dtype):
        return b'D' + str(value).encode('ascii')
    if hasattr(value, 'hash_value'):
        return b'H' + struct.pack('<Q', value.hash_value() & MASK_64)
    if isinstance(value, (tuple, list)):
        parts = [_encode(v) for v in value]
        return b'T' + struct.pack('<I', len(parts)) + b''.join(
            struct.pack('<I', len(p)) + p for p in parts
        )
    if isinstance(value, Enum):
        return b'E' + type(value).__name__.encode('utf-8') + _encode(value.value)
    raise TypeError(f"Cannot hash value of type {type(value).__name__}")


def hash_value(value: Any) -> int:
    """
    Deterministic 64-bit hash of a scalar or a nested tuple/list of scalars.

    Supports None, bool, int, float, str, bytes, torch.dtype, enums and any
    object exposing ``hash_value()`` (e.g. Shape, OpKind).
    """
    return hash_bytes(_encode(value))


def hash_values(*values: Any) -> int:
    """Hash several scalar parameters into a single node hash seed."""
    return hash_value(tuple(values))


def hash_tensor(tensor: torch.Tensor) -> int:
    """Hash a tensor's dtype, shape and content."""
    data = tensor.detach().cpu().contiguous()
    header = hash_value((data.dtype, tuple(data.shape)))
    if data.dtype == torch.bfloat16:
        data = data.view(torch.int16)
    payload = data.numpy().tobytes() if data.numel() > 0 else b''
    return hash_combine(header, hash_bytes(payload))


def fold_hashes(hashes: Iterable[int], seed: int) -> int:
    """Left fold of ``hash_combine`` over ``hashes`` starting at ``seed``."""
    acc = seed
    for h in hashes:
        acc = hash_combine(acc, h)
    return acc


__all__ = [
    'MASK_64',
    'hash_combine',
    'hash_bytes',
    'hash_value',
    'hash_values',
    'hash_tensor',
    'fold_hashes',
]
