"""
texture_dna/genome.py - Tree-addressed parameter store and chromosome persistence

Procedural generator parameter sets are tree shaped. The identity of each
parameter is hashed from a local tree address and the parameter name, so a
parameter keeps its value when unrelated parts of the tree change. Potential
hash collisions are ignored.
"""
import hashlib
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .errors import ChromosomeFormatError, NavigationError
from .rnd import MASK32, MASK64, RandomSource, Rnd

logger = logging.getLogger(__name__)

# Number of trailing address components that take part in the parameter hash.
ADDRESS_LEVELS = 8

_ADDRESS_MULTIPLIER = 0xD6E8FEB86659FD93
_U32_SCALE = 1.0 / (1 << 32)
_U32_SPAN = 1.0 / MASK32


class ParameterKind(Enum):
    CATEGORICAL = 'categorical'
    ORDERED = 'ordered'


@dataclass(frozen=True)
class Parameter:
    """A drawn parameter, recorded for interactive display, editing and mutation"""
    kind: ParameterKind
    name: str
    value: str
    value_float: Optional[float]
    address: Tuple[int, ...]
    maximum: int
    raw: int
    hash: int
    choices: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_structural(self) -> bool:
        return self.kind is ParameterKind.CATEGORICAL


def name_hash(name: str) -> int:
    digest = hashlib.blake2b(name.encode('utf-8'), digest_size=8).digest()
    return int.from_bytes(digest, 'little')


def address_hash(address: Sequence[int]) -> int:
    """Ad hoc hash of the last ADDRESS_LEVELS address components"""
    window = address[-ADDRESS_LEVELS:]
    h = len(window)
    for component in window:
        h = ((h ^ component ^ (h >> 32)) * _ADDRESS_MULTIPLIER) & MASK64
    return ((h ^ (h >> 32)) * _ADDRESS_MULTIPLIER) & MASK64


def _choose(raw: int, weights: Sequence[float]) -> int:
    """Map a raw gene to a slot index.

    A raw value that already indexes a nonzero-weight slot is used directly, so
    an edited index round-trips exactly. Any other value is rescaled over the
    total weight and resolved by roulette.
    """
    if raw < len(weights) and weights[raw] > 0.0:
        return raw
    total = sum(weights)
    if not total > 0.0:
        raise ValueError("At least one choice must have a positive weight")
    remainder = raw * _U32_SCALE * total
    chosen = 0
    for i, weight in enumerate(weights):
        if weight <= 0.0:
            continue
        chosen = i
        remainder -= weight
        if remainder <= 0.0:
            break
    return chosen


class Genome:
    """Mutable context threaded through one generation pass.

    The current tree address lives here and is updated as parameters are drawn:
    drawing increments the bottommost component, descending adds a level.
    """

    def __init__(self, seed: int = 0, interactive: bool = True,
                 rnd_factory: Callable[[int], RandomSource] = Rnd):
        self.address: List[int] = [0]
        self.genes: Dict[int, int] = {}
        self.rnd_factory = rnd_factory
        self.rnd = rnd_factory(seed & MASK64)
        self.interactive = interactive
        self.parameters: List[Parameter] = []

    # -- state ---------------------------------------------------------------

    def reset(self) -> None:
        """Prepare for another generation pass. The chromosome is kept."""
        self.address = [0]
        self.parameters.clear()

    def is_interactive(self) -> bool:
        return self.interactive

    def set_interactive(self, interactive: bool) -> None:
        self.interactive = interactive

    def log(self) -> List[Parameter]:
        """Parameters drawn during the current pass, in draw order"""
        return list(self.parameters)

    def parameter(self, i: int) -> Parameter:
        return self.parameters[i]

    def parameter_count(self) -> int:
        return len(self.parameters)

    def chromosome(self) -> Dict[int, int]:
        return dict(self.genes)

    def value(self, parameter_hash: int) -> Optional[int]:
        return self.genes.get(parameter_hash)

    def set_value(self, parameter_hash: int, raw: int) -> None:
        """Override a gene, e.g. from an editor, before regenerating"""
        if not 0 <= parameter_hash <= MASK64:
            raise ValueError(f"Parameter hash out of range: {parameter_hash}")
        if not 0 <= raw <= MASK32:
            raise ValueError(f"Gene value out of range: {raw}")
        self.genes[parameter_hash] = raw

    # -- hashing and drawing -------------------------------------------------

    def parameter_hash(self, name: str) -> int:
        return name_hash(name) ^ address_hash(self.address)

    def _draw(self, parameter_hash: int) -> int:
        value = self.genes.get(parameter_hash)
        if value is None:
            value = self.rnd.next_u32()
            self.genes[parameter_hash] = value
        return value

    def _advance(self) -> None:
        self.address[-1] = (self.address[-1] + 1) & MASK32

    def _record(self, kind: ParameterKind, name: str, value: str, value_float: Optional[float],
                maximum: int, raw: int, parameter_hash: int, choices: Tuple[str, ...] = ()) -> None:
        if self.interactive:
            self.parameters.append(Parameter(
                kind, name, value, value_float, tuple(self.address),
                maximum, raw, parameter_hash, choices
            ))

    def integer(self, name: str) -> int:
        """Full range 32-bit parameter"""
        h = self.parameter_hash(name)
        raw = self._draw(h)
        self._record(ParameterKind.ORDERED, name, str(raw), None, MASK32, raw, h)
        self._advance()
        return raw

    def integer_in(self, name: str, minimum: int, maximum: int) -> int:
        """Parameter in the inclusive range minimum...maximum.

        The raw gene is reduced modulo the range size, which is slightly biased
        for sizes that do not divide 2**32.
        """
        if maximum < minimum:
            raise ValueError(f"Empty range for {name!r}: {minimum}..{maximum}")
        h = self.parameter_hash(name)
        raw = self._draw(h) % (maximum - minimum + 1)
        self._record(ParameterKind.ORDERED, name, str(raw + minimum), None, maximum - minimum, raw, h)
        self._advance()
        return raw + minimum

    def real(self, name: str) -> float:
        """Parameter in [0, 1)"""
        h = self.parameter_hash(name)
        raw = self._draw(h)
        value = raw * _U32_SCALE
        self._record(ParameterKind.ORDERED, name, f"{value:.3f}", value, MASK32, raw, h)
        self._advance()
        return value

    def real_in(self, name: str, minimum: float, maximum: float) -> float:
        """Parameter in the closed range minimum...maximum"""
        h = self.parameter_hash(name)
        raw = self._draw(h)
        value = minimum + (maximum - minimum) * (raw * _U32_SPAN)
        self._record(ParameterKind.ORDERED, name, f"{value:.3f}", value, MASK32, raw, h)
        self._advance()
        return value

    def real_transformed(self, name: str, xform: Callable[[float], float]) -> float:
        """Parameter in [0, 1) reshaped by a monotone function, e.g. `lambda x: xerp(2, 32, x)`"""
        h = self.parameter_hash(name)
        raw = self._draw(h)
        value = xform(raw * _U32_SCALE)
        self._record(ParameterKind.ORDERED, name, f"{value:.3f}", value, MASK32, raw, h)
        self._advance()
        return value

    def _categorical(self, name: str, weights: Sequence[float], labels: Sequence[str]) -> int:
        if not weights:
            raise ValueError(f"No choices given for {name!r}")
        h = self.parameter_hash(name)
        index = _choose(self._draw(h), weights)
        live = tuple(label for weight, label in zip(weights, labels) if weight > 0.0)
        self._record(ParameterKind.CATEGORICAL, name, labels[index], None,
                     len(weights) - 1, index, h, live)
        self._advance()
        return index

    def index(self, name: str, choices: Sequence[Tuple[float, str]]) -> int:
        """Index of a weighted choice among (weight, label) pairs"""
        return self._categorical(name, [c[0] for c in choices], [c[1] for c in choices])

    def choice(self, name: str, choices: Sequence[Tuple[float, str, Any]]) -> Any:
        """Value of a weighted choice among (weight, label, value) triples"""
        i = self._categorical(name, [c[0] for c in choices], [c[1] for c in choices])
        return choices[i][2]

    def call(self, name: str, choices: Sequence[Tuple[float, str, Any]],
             dispatch: Callable[..., Any], *args, **kwargs) -> Any:
        """Choose a production rule and expand it one level below the choice.

        `dispatch(genome, rule, *args, **kwargs)` receives the chosen value; all
        parameters it draws nest under the choice parameter.
        """
        rule = self.choice(name, choices)
        self.group()
        result = dispatch(self, rule, *args, **kwargs)
        self.ungroup()
        return result

    # -- navigation ----------------------------------------------------------

    def group(self) -> None:
        """Start a branch under the previously drawn parameter. Must be matched by `ungroup`."""
        if self.address[-1] == 0:
            raise NavigationError(f"group() without a drawn parameter at {self.address}")
        self.address[-1] -= 1
        self.address.append(0)

    def ungroup(self) -> None:
        """End the branch started by the matching `group`"""
        if len(self.address) < 2:
            raise NavigationError("ungroup() without a matching group()")
        self.address.pop()
        self._advance()

    def generate(self, f: Callable[..., Any], *args, **kwargs) -> Any:
        """Call a subgenerator in a new branch that has no parent parameter"""
        self._advance()
        self.group()
        result = f(self, *args, **kwargs)
        self.ungroup()
        return result

    # -- persistence ---------------------------------------------------------

    def dumps(self, preamble: str = '') -> str:
        if '\n' in preamble or '\r' in preamble:
            raise ValueError("Preamble must be a single line")
        lines = [preamble]
        lines.extend(f"{key} {value}" for key, value in sorted(self.genes.items()))
        return '\n'.join(lines) + '\n'

    def save(self, path: str, preamble: str = '') -> None:
        """Write the preamble line followed by one "<hash> <value>" line per gene"""
        text = self.dumps(preamble)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)

    @classmethod
    def loads(cls, text: str, seed: int = 0) -> Tuple[str, 'Genome']:
        preamble, genes = parse_chromosome(text)
        genome = cls(seed)
        genome.genes = genes
        return preamble, genome

    @classmethod
    def load(cls, path: str) -> Optional[Tuple[str, 'Genome']]:
        """Load (preamble, genome) from path. Returns None if the file is unreadable or malformed."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
            return cls.loads(text)
        except (OSError, UnicodeDecodeError, ChromosomeFormatError) as e:
            logger.warning("Could not load genome from %s: %s", path, e)
            return None

    def __repr__(self) -> str:
        return (f"Genome(genes={len(self.genes)}, parameters={len(self.parameters)}, "
                f"address={self.address})")


def parse_chromosome(text: str) -> Tuple[str, Dict[int, int]]:
    """Parse persisted chromosome text. Raises ChromosomeFormatError on the first bad line."""
    lines = text.splitlines()
    if not lines:
        return '', {}
    genes: Dict[int, int] = {}
    for number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        fields = line.split()
        if len(fields) != 2:
            raise ChromosomeFormatError(number, line, "expected '<hash> <value>'")
        if not all(f.isascii() and f.isdigit() for f in fields):
            raise ChromosomeFormatError(number, line, "not a decimal integer")
        key, value = int(fields[0]), int(fields[1])
        if not 0 <= key <= MASK64:
            raise ChromosomeFormatError(number, line, "hash out of 64-bit range")
        if not 0 <= value <= MASK32:
            raise ChromosomeFormatError(number, line, "value out of 32-bit range")
        genes[key] = value
    return lines[0], genes


def xerp(a: float, b: float, t: float) -> float:
    """Exponential interpolation: log-uniform when t is uniform"""
    return math.exp(math.log(a) + (math.log(b) - math.log(a)) * t)
