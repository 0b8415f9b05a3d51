"""
texture_dna/textures.py - Texture operator nodes

Textures are self-maps of 3-space evaluated on batches of points. Leaves are
procedural bases (noise, Voronoi, camo); inner nodes shape one child or combine
two, and a fractal node sums one child over several octaves.
"""
import itertools
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .hashing import hash64a, hash64c, hash64d, hash_01, hash_11, hash_unit, u64
from .shaping import Distance, Ease, smooth3, smooth5, softexp, softsign, wave
from .tiling import Hasher

_NEIGHBORHOOD = list(itertools.product((-1, 0, 1), repeat=3))

# Features per cell, indexed by the low 3 bits of the cell hash.
# Rough approximations to Poisson distributions.
_NOISE_FEATURES = np.array([1, 1, 1, 2, 2, 2, 3, 3])
_VNOISE_FEATURES = np.array([0, 1, 1, 1, 2, 2, 2, 3])
_VORONOI_FEATURES = np.array([1, 1, 1, 1, 2, 2, 2, 3])

_MAX_FEATURES = 3


def _fmt(x: float) -> str:
    return repr(float(x))


def _length(v: np.ndarray) -> np.ndarray:
    return np.sqrt(np.sum(v * v, axis=-1))


def _rotate(v: np.ndarray, axis: np.ndarray, angle: np.ndarray) -> np.ndarray:
    """Rotate vectors v about unit axes by angles (Rodrigues' formula)"""
    cos = np.cos(angle)[..., None]
    sin = np.sin(angle)[..., None]
    dot = np.sum(axis * v, axis=-1)[..., None]
    return v * cos + np.cross(axis, v) * sin + axis * dot * (1.0 - cos)


class Texture(ABC):
    """Base class for all texture nodes"""

    children: Tuple['Texture', ...] = ()

    def at(self, point) -> np.ndarray:
        """Evaluate at one point (shape (3,)) or a batch (shape (..., 3))"""
        return self.at_frequency(point, None)

    def at_frequency(self, point, frequency: Optional[float] = None) -> np.ndarray:
        points = np.asarray(point, dtype=np.float64)
        if points.shape[-1:] != (3,):
            raise ValueError(f"Points must have a trailing axis of length 3, got {points.shape}")
        flat = points.reshape(-1, 3)
        return self.evaluate(flat, frequency).reshape(points.shape)

    @abstractmethod
    def evaluate(self, points: np.ndarray, frequency: Optional[float]) -> np.ndarray:
        """Evaluate an (N, 3) batch of points, returning (N, 3) values"""

    @abstractmethod
    def serialize(self) -> str:
        """Constructor expression that rebuilds this texture"""

    def serialize_basis(self) -> str:
        """Constructor expression for use as a fractal child, where frequency comes from the fractal"""
        return self.serialize()

    def get_all_nodes(self) -> List['Texture']:
        nodes = [self]
        for child in self.children:
            nodes.extend(child.get_all_nodes())
        return nodes

    def get_depth(self) -> int:
        """Number of operator levels above the deepest leaf; 0 for a leaf"""
        if not self.children:
            return 0
        return 1 + max(child.get_depth() for child in self.children)

    def __str__(self):
        return self.serialize()


# -- bases -------------------------------------------------------------------

class Noise(Texture):
    """Roughly isotropic gradient noise"""

    def __init__(self, seed: int, frequency: float, hasher: Hasher):
        self.seed = seed
        self.frequency = frequency
        self.hasher = hasher

    def evaluate(self, points, frequency):
        basis = self.hasher.query(self.seed, frequency or self.frequency, points)
        result = np.zeros_like(points)
        for dx, dy, dz in _NEIGHBORHOOD:
            h = self.hasher.hash_cell(basis, dx, dy, dz)
            n = _NOISE_FEATURES[(h & np.uint64(7)).astype(np.intp)]
            offset = np.array([dx, dy, dz], dtype=np.float64) - basis.d
            for i in range(_MAX_FEATURES):
                delta = hash_01(h) + offset
                distance2 = np.sum(delta * delta, axis=-1)
                inside = (n > i) & (distance2 < 1.0)
                if np.any(inside):
                    blend = 1.0 - smooth5(np.sqrt(np.minimum(distance2, 1.0)))
                    gradient = hash_unit(hash64d(h))
                    amount = blend * np.sum(gradient * delta, axis=-1)
                    result += np.where(inside[:, None], hash_11(h) * amount[:, None], 0.0)
                h = hash64c(h)
        return result * 3.0

    def serialize(self):
        return f"noise({self.seed}, {_fmt(self.frequency)}, {self.hasher.code()})"

    def serialize_basis(self):
        return f"noise_basis({self.seed}, {self.hasher.code()})"


class VNoise(Texture):
    """Roughly isotropic value noise"""

    def __init__(self, seed: int, frequency: float, ease: Ease, hasher: Hasher):
        self.seed = seed
        self.frequency = frequency
        self.ease = ease
        self.hasher = hasher

    def evaluate(self, points, frequency):
        basis = self.hasher.query(self.seed, frequency or self.frequency, points)
        result = np.zeros_like(points)
        for dx, dy, dz in _NEIGHBORHOOD:
            h = self.hasher.hash_cell(basis, dx, dy, dz)
            n = _VNOISE_FEATURES[(h & np.uint64(7)).astype(np.intp)]
            offset = np.array([dx, dy, dz], dtype=np.float64) - basis.d
            for i in range(_MAX_FEATURES):
                delta = hash_01(h) + offset
                distance2 = np.sum(delta * delta, axis=-1)
                inside = (n > i) & (distance2 < 1.0)
                if np.any(inside):
                    blend = self.ease.at(1.0 - np.sqrt(np.minimum(distance2, 1.0)))
                    result += np.where(inside[:, None], hash_11(h) * blend[:, None], 0.0)
                h = hash64c(h)
        return result

    def serialize(self):
        return (f"vnoise({self.seed}, {_fmt(self.frequency)}, {self.ease.code()}, "
                f"{self.hasher.code()})")

    def serialize_basis(self):
        return f"vnoise_basis({self.seed}, {self.ease.code()}, {self.hasher.code()})"


def _cell_features(hasher: Hasher, seed: int, frequency: float, metric: Distance,
                   points: np.ndarray, colors: bool):
    """Distances to the three nearest feature points, and optionally a soft cell color"""
    basis = hasher.query(seed, frequency, points)
    nearest = np.full((len(points), 3), np.inf)
    color = np.zeros_like(points)
    color_weight = np.zeros(len(points))
    for dx, dy, dz in _NEIGHBORHOOD:
        h = hasher.hash_cell(basis, dx, dy, dz)
        n = _VORONOI_FEATURES[(h & np.uint64(7)).astype(np.intp)]
        offset = np.array([dx, dy, dz], dtype=np.float64) - basis.d
        for i in range(_MAX_FEATURES):
            active = n > i
            distance = np.where(active, metric.compute(hash_01(h) + offset), np.inf)
            # Insert into the sorted triple of nearest distances.
            nearest = np.sort(np.concatenate([nearest, distance[:, None]], axis=1), axis=1)[:, :3]
            if colors:
                weight = np.where(active, np.exp(50.0 - np.minimum(distance, 2.0) * 50.0), 0.0)
                color += hash_11(hash64a(h)) * weight[:, None]
                color_weight += weight
            h = hash64c(h)
    if colors:
        color /= np.maximum(color_weight, 1e-30)[:, None]
    return nearest, color


_PATTERN_VECTORS = np.array([
    [1.0, 0.0, 0.0],
    [-1.0, 1.0, 0.0],
    [0.0, 0.8, 0.0],
    [0.4, 0.4, 0.0],
    [0.0, 0.0, 0.6],
    [-0.5, 0.5, 0.5],
    [0.5, -0.5, 0.5],
    [0.0, -1.0, 1.0],
    [-1.0, 0.0, 1.0],
    [-0.5, -0.5, 1.0],
    [0.25, 0.25, 0.25],
    [0.4, 0.0, 0.4],
    [0.0, 0.3, 0.3],
])

VORONOI_PATTERNS = 26


def voronoi_pattern(i: int, distances: np.ndarray) -> np.ndarray:
    """One of 26 shaping functions of the (d1, d2, d3) nearest distances, in [0, 1]"""
    if not 0 <= i < VORONOI_PATTERNS:
        raise ValueError(f"Voronoi pattern out of range: {i}")
    # Rows of distances are sorted, so every dot product here is non-negative.
    p = np.minimum(1.0, distances @ _PATTERN_VECTORS[i // 2])
    return p if i % 2 == 0 else 1.0 - p


class Voronoi(Texture):
    """Voronoi basis shaped by three distance patterns, one per component"""

    def __init__(self, seed: int, frequency: float, ease: Ease, metric: Distance, hasher: Hasher,
                 pattern_x: int, pattern_y: int, pattern_z: int):
        for pattern in (pattern_x, pattern_y, pattern_z):
            if not 0 <= pattern < VORONOI_PATTERNS:
                raise ValueError(f"Voronoi pattern out of range: {pattern}")
        self.seed = seed
        self.frequency = frequency
        self.ease = ease
        self.metric = metric
        self.hasher = hasher
        self.patterns = (pattern_x, pattern_y, pattern_z)

    def evaluate(self, points, frequency):
        nearest, _ = _cell_features(self.hasher, self.seed, frequency or self.frequency,
                                    self.metric, points, colors=False)
        return np.stack([
            self.ease.at(voronoi_pattern(pattern, nearest)) * 2.0 - 1.0
            for pattern in self.patterns
        ], axis=-1)

    def serialize(self):
        px, py, pz = self.patterns
        return (f"voronoi({self.seed}, {_fmt(self.frequency)}, {self.ease.code()}, "
                f"{self.metric.code()}, {self.hasher.code()}, {px}, {py}, {pz})")

    def serialize_basis(self):
        px, py, pz = self.patterns
        return (f"voronoi_basis({self.seed}, {self.ease.code()}, {self.metric.code()}, "
                f"{self.hasher.code()}, {px}, {py}, {pz})")


class Camo(Texture):
    """Colored cells with an optional dark border"""

    def __init__(self, seed: int, frequency: float, ease: Ease, metric: Distance, hasher: Hasher,
                 border: float, sharpness: float, gradient: float):
        if border < 0.0:
            raise ValueError("Camo border width must be non-negative")
        self.seed = seed
        self.frequency = frequency
        self.ease = ease
        self.metric = metric
        self.hasher = hasher
        self.border = border
        self.sharpness = sharpness
        self.gradient = gradient

    def evaluate(self, points, frequency):
        nearest, color = _cell_features(self.hasher, self.seed, frequency or self.frequency,
                                        self.metric, points, colors=True)
        d1 = self.ease.at(np.minimum(1.0, nearest[:, 0]))
        shade = 1.0 - self.gradient * d1
        # Distance to the cell edge is proportional to d2 - d1.
        edge = np.minimum(1.0, (nearest[:, 1] - nearest[:, 0]) * (1.0 + 9.0 * self.sharpness))
        if self.border > 0.0:
            shade = shade * smooth3(np.clip(edge / self.border - 1.0, 0.0, 1.0))
        return color * shade[:, None]

    def _arguments(self):
        return f"{_fmt(self.border)}, {_fmt(self.sharpness)}, {_fmt(self.gradient)}"

    def serialize(self):
        return (f"camo({self.seed}, {_fmt(self.frequency)}, {self.ease.code()}, "
                f"{self.metric.code()}, {self.hasher.code()}, {self._arguments()})")

    def serialize_basis(self):
        return (f"camo_basis({self.seed}, {self.ease.code()}, {self.metric.code()}, "
                f"{self.hasher.code()}, {self._arguments()})")


# -- unary operators ---------------------------------------------------------

class UnaryTexture(Texture):
    """Shapes the values of one child texture"""

    name = 'unary'

    def __init__(self, texture: Texture):
        self.texture = texture
        self.children = (texture,)

    def evaluate(self, points, frequency):
        return self.shape(self.texture.evaluate(points, frequency))

    @abstractmethod
    def shape(self, v: np.ndarray) -> np.ndarray:
        """Map child values to output values"""

    def arguments(self) -> Sequence[str]:
        return ()

    def serialize(self):
        args = ', '.join(list(self.arguments()) + [self.texture.serialize()])
        return f"{self.name}({args})"

    def serialize_basis(self):
        args = ', '.join(list(self.arguments()) + [self.texture.serialize_basis()])
        return f"{self.name}({args})"


class Saturate(UnaryTexture):
    """Saturates components; amount equals the derivative at the origin"""
    name = 'saturate'

    def __init__(self, amount: float, texture: Texture):
        if not amount > 0.0:
            raise ValueError("Saturate amount must be positive")
        super().__init__(texture)
        self.amount = amount

    def shape(self, v):
        return softsign(v * self.amount)

    def arguments(self):
        return (_fmt(self.amount),)


class Posterize(UnaryTexture):
    """Smooth staircase applied in proportion to value magnitude"""
    name = 'posterize'

    def __init__(self, levels: float, sharpness: float, texture: Texture):
        super().__init__(texture)
        self.levels = levels
        self.sharpness = sharpness

    def shape(self, v):
        magnitude = self.levels * _length(v)
        base = np.floor(magnitude)
        t = magnitude - base
        power = 1.0 + 50.0 * self.sharpness * self.sharpness
        p = np.where(t < 0.5,
                     0.5 * np.power(2.0 * t, power),
                     1.0 - 0.5 * np.power(2.0 * (1.0 - t), power))
        safe = np.where(magnitude > 0.0, magnitude, 1.0)
        return np.where((magnitude > 0.0)[:, None], v * ((base + p) / safe)[:, None], 0.0)

    def arguments(self):
        return (_fmt(self.levels), _fmt(self.sharpness))


class Overdrive(UnaryTexture):
    """Saturates while retaining component proportions"""
    name = 'overdrive'

    def __init__(self, amount: float, texture: Texture):
        if not amount > 0.0:
            raise ValueError("Overdrive amount must be positive")
        super().__init__(texture)
        self.amount = amount

    def shape(self, v):
        # The 4-norm is a smooth proxy for the largest component magnitude.
        m = np.sqrt(np.sqrt(np.sum((v * v) ** 2, axis=-1)))
        safe = np.where(m > 0.0, m, 1.0)
        return np.where((m > 0.0)[:, None], v / safe[:, None] * softsign(m * self.amount)[:, None], 0.0)

    def arguments(self):
        return (_fmt(self.amount),)


class VReflect(UnaryTexture):
    """Wavy function of vector magnitude"""
    name = 'vreflect'

    def __init__(self, amount: float, texture: Texture):
        if not amount > 0.0:
            raise ValueError("VReflect amount must be positive")
        super().__init__(texture)
        self.amount = amount

    def shape(self, v):
        m = _length(v)
        safe = np.where(m > 0.0, m, 1.0)
        scale = np.sin(m * self.amount * math.pi * 0.5) / safe
        return np.where((m > 0.0)[:, None], v * scale[:, None], 0.0)

    def arguments(self):
        return (_fmt(self.amount),)


class Reflect(UnaryTexture):
    """Wavy function of offset component values, spreading and reflecting them"""
    name = 'reflect'

    def __init__(self, amount: float, offset: Sequence[float], texture: Texture):
        super().__init__(texture)
        self.amount = amount
        self.offset = np.asarray(offset, dtype=np.float64)

    def shape(self, v):
        return wave(smooth3, self.offset + v * self.amount)

    def arguments(self):
        x, y, z = self.offset
        return (_fmt(self.amount), f"vec3({_fmt(x)}, {_fmt(y)}, {_fmt(z)})")


class Shift(UnaryTexture):
    """Rotates values about a seeded origin, inducing dependencies between components"""
    name = 'shift'

    def __init__(self, seed: int, texture: Texture):
        super().__init__(texture)
        self.seed = seed
        s = u64(seed)
        self.axis = hash_unit(s)[0]
        angle_t = hash_01(hash64c(s))[0, 0]
        self.angle = math.tau / 8.0 + (math.tau * 6.0 / 8.0) * angle_t
        self.origin = hash_11(hash64d(s))[0]

    def shape(self, v):
        p = _rotate(v - self.origin, self.axis, np.full(len(v), self.angle)) + self.origin
        return np.sin(p)

    def arguments(self):
        return (str(self.seed),)


# -- binary operators --------------------------------------------------------

class BinaryTexture(Texture):
    """Combines two child textures"""

    name = 'binary'

    def __init__(self, texture_a: Texture, texture_b: Texture):
        self.texture_a = texture_a
        self.texture_b = texture_b
        self.children = (texture_a, texture_b)

    def arguments(self) -> Sequence[str]:
        return ()

    def serialize(self):
        args = list(self.arguments()) + [self.texture_a.serialize(), self.texture_b.serialize()]
        return f"{self.name}({', '.join(args)})"

    def serialize_basis(self):
        args = list(self.arguments()) + [self.texture_a.serialize_basis(),
                                         self.texture_b.serialize_basis()]
        return f"{self.name}({', '.join(args)})"


class Rotate(BinaryTexture):
    """Rotates values of texture B about axes given by texture A; amount is radians per unit length"""
    name = 'rotate'

    def __init__(self, amount: float, texture_a: Texture, texture_b: Texture):
        if not amount > 0.0:
            raise ValueError("Rotate amount must be positive")
        super().__init__(texture_a, texture_b)
        self.amount = amount

    def evaluate(self, points, frequency):
        u = self.texture_a.evaluate(points, frequency)
        v = self.texture_b.evaluate(points, frequency)
        length = _length(u)
        valid = length > 1.0e-9
        axis = u / np.where(valid, length, 1.0)[:, None]
        rotated = _rotate(v, axis, self.amount * length)
        return np.where(valid[:, None], rotated, 0.0)

    def arguments(self):
        return (_fmt(self.amount),)


class Softmix(BinaryTexture):
    """Mixes two textures weighted by their value magnitudes"""
    name = 'softmix3'

    def __init__(self, amount: float, texture_a: Texture, texture_b: Texture,
                 displacement: float = 0.0):
        if not amount > 0.0:
            raise ValueError("Softmix amount must be positive")
        super().__init__(texture_a, texture_b)
        self.amount = amount
        self.displacement = displacement

    def evaluate(self, points, frequency):
        u = self.texture_a.evaluate(points, frequency)
        v = self.texture_b.evaluate(points + u * (self.displacement / (frequency or 2.0)), frequency)
        vw = _length(softexp(v * self.amount))[:, None]
        uw = _length(softexp(u * self.amount))[:, None]
        return (v * vw + u * uw) / (vw + uw + 1.0e-9)

    def arguments(self):
        return (_fmt(self.amount), _fmt(self.displacement))


class Layer(BinaryTexture):
    """Layers texture B on texture A, weighted by the distance between their values"""
    name = 'layer'

    def __init__(self, width: float, ease: Ease, texture_a: Texture, texture_b: Texture):
        if not width > 0.0:
            raise ValueError("Layer width must be positive")
        super().__init__(texture_a, texture_b)
        self.width = width
        self.ease = ease

    def evaluate(self, points, frequency):
        u = self.texture_a.evaluate(points, frequency)
        v = self.texture_b.evaluate(points, frequency)
        distance = _length(u - v)
        weight = np.where(distance < self.width,
                          self.ease.at(np.clip(1.0 - distance / self.width, 0.0, 1.0)), 0.0)
        return u + v * weight[:, None]

    def arguments(self):
        return (_fmt(self.width), self.ease.code())


class Displace(BinaryTexture):
    """Displaces lookups of texture B by the values of texture A"""
    name = 'displace'

    def __init__(self, amount: float, texture_a: Texture, texture_b: Texture):
        super().__init__(texture_a, texture_b)
        self.amount = amount

    def evaluate(self, points, frequency):
        u = self.texture_a.evaluate(points, frequency)
        return self.texture_b.evaluate(points + u * (self.amount / (frequency or 2.0)), frequency)

    def arguments(self):
        return (_fmt(self.amount),)


# -- fractal -----------------------------------------------------------------

class Fractal(Texture):
    """Sums octaves of a child texture evaluated at geometrically spaced frequencies"""

    def __init__(self, base_frequency: float, octaves: int, first_octave: int, roughness: float,
                 lacunarity: float, displace: float, layer: float, texture: Texture):
        if octaves < 1:
            raise ValueError("Fractal needs at least one octave")
        if not 0 <= first_octave < octaves:
            raise ValueError(f"First octave {first_octave} outside 0..{octaves - 1}")
        self.base_frequency = base_frequency
        self.octaves = octaves
        self.first_octave = first_octave
        self.roughness = roughness
        self.lacunarity = lacunarity
        self.displace = displace
        self.layer = layer
        self.texture = texture
        self.children = (texture,)

    def evaluate(self, points, frequency):
        result = np.zeros_like(points)
        p = points.copy()
        total_w = np.zeros(len(points))
        octave = self.first_octave
        # Octaves run from the first octave down to 0, then upwards from above it.
        for _ in range(self.octaves):
            f = self.base_frequency * self.lacunarity ** octave
            w = self.roughness ** octave
            v = self.texture.evaluate(p, f)
            if octave <= self.first_octave or self.layer == 0.0:
                weight = np.ones(len(points))
            else:
                mean = result / np.maximum(total_w, 1e-30)[:, None]
                distance = _length(mean - v)
                weight = np.where(distance < self.layer,
                                  smooth3(np.clip(1.0 - distance / self.layer, 0.0, 1.0)), 0.0)
            result += v * (w * weight)[:, None]
            total_w += w * weight
            step = v * (self.displace * weight / f)[:, None]
            if octave == 0:
                octave = self.first_octave + 1
                p = p + step
            elif octave <= self.first_octave:
                octave -= 1
                p = p + step * self.lacunarity
            else:
                octave += 1
                p = p + step / self.lacunarity
        return result / np.sqrt(np.maximum(total_w, 1e-30))[:, None]

    def serialize(self):
        return (f"fractal({_fmt(self.base_frequency)}, {self.octaves}, {self.first_octave}, "
                f"{_fmt(self.roughness)}, {_fmt(self.lacunarity)}, {_fmt(self.displace)}, "
                f"{_fmt(self.layer)}, {self.texture.serialize_basis()})")
