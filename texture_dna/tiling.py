"""
texture_dna/tiling.py - Lattice hashers that decide the topology of a texture

A hasher attaches a feature grid to queried points and hashes grid cells.
Tiling hashers wrap cell coordinates so the texture repeats with period 1 on
the tiled axes; they round frequencies to the nearest positive integer.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np

from .hashing import hash64a, hash64b, hash64c, hash_01, u64

_CELL_MASK = np.int64(0xFFFFFFFF)


@dataclass
class Basis:
    """Grid cells attached to a batch of points"""
    seed: int
    cell: np.ndarray    # (N, 3) int64 cell coordinates
    period: Tuple[int, int, int]  # 0 on axes that do not wrap
    d: np.ndarray       # (N, 3) position inside the cell, in [0, 1)


class Hasher:
    """Non-tiling hasher; subclasses choose which axes wrap"""
    tiled = (False, False, False)
    code_name = 'tile_none'

    def query(self, seed: int, frequency: float, points: np.ndarray) -> Basis:
        tiled = any(self.tiled)
        f = max(1.0, round(frequency)) if tiled else frequency
        p = f * points + hash_01(u64(seed))[0]
        i = np.floor(p)
        cell = i.astype(np.int64)
        fi = int(f)
        period = tuple(fi if t else 0 for t in self.tiled)
        for axis, size in enumerate(period):
            if size:
                cell[:, axis] = np.mod(cell[:, axis], size)
        return Basis(seed, cell, period, p - i)

    def _coordinate(self, basis: Basis, axis: int, offset: int) -> np.ndarray:
        c = basis.cell[:, axis] + offset
        size = basis.period[axis]
        if size:
            c = np.mod(c, size)
        return (c & _CELL_MASK).astype(np.uint64)

    def hash_x(self, basis: Basis, previous: np.ndarray, dx: int) -> np.ndarray:
        return hash64a(previous ^ self._coordinate(basis, 0, dx) ^ u64(basis.seed))

    def hash_y(self, basis: Basis, previous: np.ndarray, dy: int) -> np.ndarray:
        y = self._coordinate(basis, 1, dy)
        return hash64a(previous ^ y) if self.tiled[1] else hash64b(previous ^ y)

    def hash_z(self, basis: Basis, previous: np.ndarray, dz: int) -> np.ndarray:
        z = self._coordinate(basis, 2, dz)
        return hash64a(previous ^ z) if self.tiled[2] else hash64c(previous ^ z)

    def hash_cell(self, basis: Basis, dx: int, dy: int, dz: int) -> np.ndarray:
        zero = np.zeros(len(basis.cell), dtype=np.uint64)
        hx = self.hash_x(basis, zero, dx)
        hxy = self.hash_y(basis, hx, dy)
        return self.hash_z(basis, hxy, dz)

    def code(self) -> str:
        return f"{self.code_name}()"

    def __eq__(self, other) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))


class TileNone(Hasher):
    pass


class TileZ(Hasher):
    tiled = (False, False, True)
    code_name = 'tile_z'


class TileXY(Hasher):
    tiled = (True, True, False)
    code_name = 'tile_xy'


class TileAll(Hasher):
    tiled = (True, True, True)
    code_name = 'tile_all'


class TilingMode(Enum):
    NONE = 'none'
    Z = 'z'
    XY = 'xy'
    ALL = 'all'

    def hasher(self) -> Hasher:
        return _HASHERS[self]()


_HASHERS = {
    TilingMode.NONE: TileNone,
    TilingMode.Z: TileZ,
    TilingMode.XY: TileXY,
    TilingMode.ALL: TileAll,
}
