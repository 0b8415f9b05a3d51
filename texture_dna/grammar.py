"""
texture_dna/grammar.py - Recursive stochastic texture grammar

A generation pass walks a Genome and assembles a texture tree. Every random
decision is a named genome draw, and every subtree is generated inside a
navigation bracket, so subtree parameters nest under the choice that created
them. Production rules are plain enumerations matched by a dispatch table.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Tuple

from .genome import Genome, xerp
from .shaping import Distance, Ease
from .textures import (
    Camo, Displace, Fractal, Layer, Noise, Overdrive, Posterize, Reflect, Rotate,
    Saturate, Shift, Softmix, Texture, VNoise, Voronoi, VReflect, VORONOI_PATTERNS
)
from .tiling import Hasher, TilingMode

logger = logging.getLogger(__name__)

# Beyond this recursion depth only leaves are generated.
MAX_DEPTH = 24

# Complexity budget of a fractal's child never exceeds this.
FRACTAL_CHILD_COMPLEXITY = 8.0


class NodeType(Enum):
    BASIS = 'basis'
    UNARY = 'unary'
    BINARY = 'binary'
    FRACTAL = 'fractal'


class BasisKind(Enum):
    GRADIENT_NOISE = 'gradient noise'
    VALUE_NOISE = 'value noise'
    VORONOI = 'Voronoi'
    CAMO = 'camo'


class UnaryKind(Enum):
    SATURATE = 'saturate'
    POSTERIZE = 'posterize'
    OVERDRIVE = 'overdrive'
    VREFLECT = 'vreflect'
    REFLECT = 'reflect'
    SHIFT = 'shift'


class BinaryKind(Enum):
    ROTATE = 'rotate'
    SOFTMIX = 'softmix'
    LAYER = 'layer'
    DISPLACE = 'displace'


def _table(*entries) -> List[Tuple[float, str, Enum]]:
    return [(weight, member.value, member) for weight, member in entries]


BASIS_CHOICES = _table(
    (1.0, BasisKind.GRADIENT_NOISE),
    (1.0, BasisKind.VALUE_NOISE),
    (1.0, BasisKind.VORONOI),
    (0.5, BasisKind.CAMO),
)

UNARY_CHOICES = _table(
    (1.0, UnaryKind.SATURATE),
    (1.0, UnaryKind.POSTERIZE),
    (1.0, UnaryKind.OVERDRIVE),
    (1.0, UnaryKind.VREFLECT),
    (2.0, UnaryKind.REFLECT),
    (3.0, UnaryKind.SHIFT),
)

BINARY_CHOICES = _table(
    (1.0, BinaryKind.ROTATE),
    (1.0, BinaryKind.SOFTMIX),
    (1.0, BinaryKind.LAYER),
    (2.0, BinaryKind.DISPLACE),
)

METRIC_CHOICES = _table(
    (1.0, Distance.NORM1),
    (4.0, Distance.NORM2),
    (1.0, Distance.NORM4),
    (1.0, Distance.NORM8),
    (1.0, Distance.NORM_MAX),
)

# Eases that are smooth near zero.
SMOOTH_EASE_CHOICES = _table(
    (1.0, Ease.SMOOTH3),
    (2.0, Ease.SMOOTH5),
    (1.0, Ease.SMOOTH7),
    (1.0, Ease.SMOOTH9),
    (1.0, Ease.SQUARED),
    (1.0, Ease.CUBED),
    (1.0, Ease.UP_ARC),
)

VORONOI_EASE_CHOICES = _table(
    (1.0, Ease.ID),
    (1.0, Ease.SMOOTH3),
    (1.0, Ease.SMOOTH5),
    (1.0, Ease.SMOOTH7),
    (1.0, Ease.SMOOTH9),
    (1.0, Ease.SQUARED),
)

EASE_CHOICES = _table(*((1.0, ease) for ease in Ease))

SWITCH_CHOICES = [(0.5, 'on'), (0.5, 'off')]
RARE_SWITCH_CHOICES = [(0.333, 'on'), (0.666, 'off')]


@dataclass(frozen=True)
class NodeWeights:
    basis: float
    unary: float
    binary: float
    fractal: float

    def choices(self) -> List[Tuple[float, str, NodeType]]:
        return [
            (self.basis, NodeType.BASIS.value, NodeType.BASIS),
            (self.unary, NodeType.UNARY.value, NodeType.UNARY),
            (self.binary, NodeType.BINARY.value, NodeType.BINARY),
            (self.fractal, NodeType.FRACTAL.value, NodeType.FRACTAL),
        ]


def node_weights(complexity: float, is_fractal: bool = False, depth: int = 0) -> NodeWeights:
    """Node type weights for a complexity budget.

    Leaves dominate small budgets. Inside a fractal no new fractal may start.
    Ineligible types keep a small weight so an editor can still select them.
    """
    if depth >= MAX_DEPTH:
        return NodeWeights(1.0, 0.0, 0.0, 0.0)
    if complexity <= 10.0:
        basis = 1.5
    elif complexity <= 40.0:
        basis = 0.8
    else:
        basis = 0.4
    if complexity >= 20.0:
        unary = 1.5
    elif complexity > 5.0:
        unary = 1.0
    else:
        unary = 0.01
    binary = 1.0 if complexity >= 8.0 else 0.01
    if is_fractal:
        fractal = 0.0
    elif complexity >= 9.0:
        fractal = 0.8
    else:
        fractal = 0.01
    return NodeWeights(basis, unary, binary, fractal)


def child_complexity(complexity: float) -> float:
    return complexity * 0.5 - 1.0


def gen_metric(genome: Genome, name: str) -> Distance:
    return genome.choice(name, METRIC_CHOICES)


def gen_ease_smooth(genome: Genome, name: str) -> Ease:
    return genome.choice(name, SMOOTH_EASE_CHOICES)


def gen_ease_voronoi(genome: Genome, name: str) -> Ease:
    return genome.choice(name, VORONOI_EASE_CHOICES)


def gen_ease(genome: Genome, name: str) -> Ease:
    return genome.choice(name, EASE_CHOICES)


def gen_optional(genome: Genome, switch: str, switch_choices, name: str,
                 minimum: float, maximum: float) -> float:
    """An on/off switch followed, when on, by a magnitude. Returns 0.0 when off."""
    def draw(g: Genome) -> float:
        if g.index(switch, switch_choices) == 0:
            return g.real_in(name, minimum, maximum)
        return 0.0
    return genome.generate(draw)


# -- productions -------------------------------------------------------------

def _basis(genome: Genome, complexity: float, is_fractal: bool, hasher: Hasher,
           depth: int) -> Texture:
    seed = genome.integer("seed")
    if is_fractal:
        # The fractal supplies the frequency of each octave.
        frequency = 2.0
    else:
        frequency = genome.real_transformed("frequency", lambda x: xerp(2.0, 32.0, x))
    kind = genome.choice("basis", BASIS_CHOICES)
    if kind is BasisKind.GRADIENT_NOISE:
        return Noise(seed, frequency, hasher)
    if kind is BasisKind.VALUE_NOISE:
        ease = gen_ease_smooth(genome, "noise ease")
        return VNoise(seed, frequency, ease, hasher)
    if kind is BasisKind.VORONOI:
        last = VORONOI_PATTERNS - 1
        pattern_x = genome.integer_in("Voronoi X pattern", 0, last)
        pattern_y = genome.integer_in("Voronoi Y pattern", 0, last)
        pattern_z = genome.integer_in("Voronoi Z pattern", 0, last)
        ease = gen_ease_voronoi(genome, "Voronoi ease")
        metric = gen_metric(genome, "distance metric")
        return Voronoi(seed, frequency, ease, metric, hasher, pattern_x, pattern_y, pattern_z)
    border = gen_optional(genome, "border", SWITCH_CHOICES, "border width", 0.01, 0.10)
    sharpness = genome.real_in("camo sharpness", 0.0, 1.0)
    gradient = genome.real_in("camo gradient", 0.0, 1.0)
    ease = gen_ease_smooth(genome, "camo ease")
    metric = gen_metric(genome, "distance metric")
    return Camo(seed, frequency, ease, metric, hasher, border, sharpness, gradient)


def _unary(genome: Genome, complexity: float, is_fractal: bool, hasher: Hasher,
           depth: int) -> Texture:
    budget = child_complexity(complexity)
    kind = genome.choice("unary node", UNARY_CHOICES)

    def child() -> Texture:
        return genome.generate(expand, budget, is_fractal, hasher, depth + 1)

    if kind is UnaryKind.SATURATE:
        amount = genome.real_in("amount", 1.0, 5.0)
        return Saturate(amount * amount, child())
    if kind is UnaryKind.POSTERIZE:
        levels = genome.real_in("levels", 2.0, 10.0)
        sharpness = genome.real("sharpness")
        return Posterize(levels, sharpness, child())
    if kind is UnaryKind.OVERDRIVE:
        amount = genome.real_in("amount", 1.0, 5.0)
        return Overdrive(amount * amount, child())
    if kind is UnaryKind.VREFLECT:
        amount = genome.real_in("amount", 1.0, 10.0)
        return VReflect(amount, child())
    if kind is UnaryKind.REFLECT:
        amount = genome.real_in("amount", 1.0, 2.0)
        offset = (
            genome.real_in("X offset", -1.0, 1.0),
            genome.real_in("Y offset", -1.0, 1.0),
            genome.real_in("Z offset", -1.0, 1.0),
        )
        return Reflect(amount, offset, child())
    seed = genome.integer("seed")
    return Shift(seed, child())


def _binary(genome: Genome, complexity: float, is_fractal: bool, hasher: Hasher,
            depth: int) -> Texture:
    budget = child_complexity(complexity)
    kind = genome.choice("binary node", BINARY_CHOICES)

    def children() -> Tuple[Texture, Texture]:
        a = genome.generate(expand, budget, is_fractal, hasher, depth + 1)
        b = genome.generate(expand, budget, is_fractal, hasher, depth + 1)
        return a, b

    if kind is BinaryKind.ROTATE:
        amount = genome.real_in("amount", 1.0, 3.0)
        return Rotate(amount, *children())
    if kind is BinaryKind.SOFTMIX:
        amount = genome.real_in("amount", 1.0, 5.0)
        return Softmix(amount * amount, *children())
    if kind is BinaryKind.LAYER:
        width = genome.real_in("width", 1.0, 3.0)
        ease = gen_ease(genome, "layer ease")
        return Layer(width, ease, *children())
    amount = genome.real_in("amount", 0.05, 0.25)
    return Displace(amount, *children())


def _fractal(genome: Genome, complexity: float, is_fractal: bool, hasher: Hasher,
             depth: int) -> Texture:
    budget = min(FRACTAL_CHILD_COMPLEXITY, child_complexity(complexity))
    base_frequency = genome.real_in("base frequency", 1.5, 9.0)
    roughness = genome.real_transformed("roughness", lambda x: xerp(0.4, 0.9, x))
    octaves = genome.integer_in("octaves", 2, 10)
    first_octave = genome.integer_in("first octave", 0, octaves - 1)
    lacunarity = genome.real_transformed("lacunarity", lambda x: xerp(1.5, 3.0, x))
    displace = gen_optional(genome, "displace", RARE_SWITCH_CHOICES, "amount", 0.0, 0.5)
    layer = gen_optional(genome, "layer", RARE_SWITCH_CHOICES, "width", 1.0, 4.0)
    texture = genome.generate(expand, budget, True, hasher, depth + 1)
    return Fractal(base_frequency, octaves, first_octave, roughness, lacunarity,
                   displace, layer, texture)


Production = Callable[[Genome, float, bool, Hasher, int], Texture]

PRODUCTIONS: Dict[NodeType, Production] = {
    NodeType.BASIS: _basis,
    NodeType.UNARY: _unary,
    NodeType.BINARY: _binary,
    NodeType.FRACTAL: _fractal,
}


def _dispatch(genome: Genome, node_type: NodeType, complexity: float, is_fractal: bool,
              hasher: Hasher, depth: int) -> Texture:
    return PRODUCTIONS[node_type](genome, complexity, is_fractal, hasher, depth)


def expand(genome: Genome, complexity: float, is_fractal: bool, hasher: Hasher,
           depth: int = 0) -> Texture:
    """Generate a subtree at the current genome address"""
    weights = node_weights(complexity, is_fractal, depth)
    return genome.call("node type", weights.choices(), _dispatch,
                       complexity, is_fractal, hasher, depth)


def generate(complexity: float, genome: Genome, tiling: TilingMode = TilingMode.NONE) -> Texture:
    """Run a full generation pass from the root address.

    The genome is reset first, so regenerating from the same chromosome yields
    the same tree and the same parameter log.
    """
    genome.reset()
    texture = expand(genome, complexity, False, tiling.hasher())
    logger.debug("Generated %d nodes from complexity %.1f (%d parameters, %d genes)",
                 len(texture.get_all_nodes()), complexity,
                 genome.parameter_count(), len(genome.genes))
    return texture
