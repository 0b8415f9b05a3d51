"""
texture_dna/hashing.py - Vectorised 64-bit hash permutations

All functions take and return numpy uint64 arrays; multiplication wraps modulo 2**64.
"""
import numpy as np

_U64 = np.uint64


def u64(x) -> np.ndarray:
    """Coerce ints or arrays to a uint64 array of at least one dimension"""
    if isinstance(x, np.ndarray) and x.dtype == np.uint64:
        return np.atleast_1d(x)
    if isinstance(x, int):
        return np.array([x & 0xFFFFFFFFFFFFFFFF], dtype=np.uint64)
    return np.atleast_1d(np.asarray(x)).astype(np.int64).view(np.uint64)


def hash64a(x: np.ndarray) -> np.ndarray:
    """64-bit hash by degski"""
    c = _U64(0xD6E8FEB86659FD93)
    x = (x ^ (x >> _U64(32))) * c
    x = (x ^ (x >> _U64(32))) * c
    return x ^ (x >> _U64(32))


def hash64b(x: np.ndarray) -> np.ndarray:
    """64-bit finalizer from MurmurHash3"""
    x = (x ^ (x >> _U64(33))) * _U64(0xFF51AFD7ED558CCD)
    x = (x ^ (x >> _U64(33))) * _U64(0xC4CEB9FE1A85EC53)
    return x ^ (x >> _U64(33))


def hash64c(x: np.ndarray) -> np.ndarray:
    """64-bit hash by Thomas Wang"""
    x = ~(x + (x << _U64(21)))
    x = x ^ (x >> _U64(24))
    x = x + (x << _U64(3)) + (x << _U64(8))
    x = x ^ (x >> _U64(14))
    x = x + (x << _U64(2)) + (x << _U64(4))
    x = x ^ (x >> _U64(28))
    return x + (x << _U64(31))


def hash64d(x: np.ndarray) -> np.ndarray:
    """64-bit hash from FarmHash"""
    c = _U64(0x9DDFEA08EB382D69)
    x = x * c
    x = (x ^ (x >> _U64(44))) * c
    return (x ^ (x >> _U64(41))) * c


_MASK21 = _U64(0x1FFFFF)
_SCALE21 = 1.0 / (1 << 21)


def _unpack21(h: np.ndarray) -> np.ndarray:
    return np.stack([
        (h & _MASK21).astype(np.float64),
        ((h >> _U64(21)) & _MASK21).astype(np.float64),
        (h >> _U64(43)).astype(np.float64),
    ], axis=-1)


def hash_01(seed: np.ndarray) -> np.ndarray:
    """Pseudorandom vectors with components in [0, 1), shape seed.shape + (3,)"""
    return _unpack21(hash64a(seed)) * _SCALE21


def hash_11(seed: np.ndarray) -> np.ndarray:
    """Pseudorandom vectors with components in [-1, 1]"""
    return _unpack21(hash64b(seed)) * (2.0 * _SCALE21) - 1.0


def hash_unit(seed: np.ndarray) -> np.ndarray:
    """Pseudorandom vectors of unit length, by rejection sampling"""
    seed = seed.copy()
    result = hash_11(seed)
    length2 = np.sum(result * result, axis=-1)
    pending = length2 > 1.0
    while np.any(pending):
        # hash64d maps zero to itself; hash64c does not.
        seed[pending] = hash64c(seed[pending])
        result[pending] = hash_11(seed[pending])
        length2 = np.sum(result * result, axis=-1)
        pending = length2 > 1.0
    length = np.sqrt(length2)[..., None]
    return np.where(length > 0.0, result / np.where(length > 0.0, length, 1.0), result)
