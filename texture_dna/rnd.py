"""
texture_dna/rnd.py - Krull64 random number generator and LCG jump arithmetic
"""
from typing import Protocol, Tuple

MASK32 = 0xFFFFFFFF
MASK64 = 0xFFFFFFFFFFFFFFFF
MASK128 = (1 << 128) - 1

# 65-bit LCG multiplier for the 128-bit LCG (Steele & Vigna, 2020).
LCG_M65_1 = 0x1DF77A66A374E300D

# 128-bit LCG multipliers, useful for test streams.
LCG_M128_1 = 0xDE92A69F6E2F9F25FD0D90F576075FBD
LCG_M128_2 = 0x576BC0A2178FCF7C619F3EBC7363F7F5
LCG_M128_3 = 0x87EA3DE194DD2E97074F3D0C2EA63D35


class RandomSource(Protocol):
    """What a genome needs from its randomness source"""

    def next_u32(self) -> int: ...

    def next_u64(self) -> int: ...

    def next_float(self) -> float: ...

    def next_bool(self, p: float) -> bool: ...


def get_jump(m: int, p: int, n: int, mask: int = MASK128) -> Tuple[int, int]:
    """Return the (m, p) pair that advances the LCG state <- state * m + p by n steps.

    Brown, F. B., "Random Number Generation with Arbitrary Stride" (1994).
    """
    unit_m, unit_p = m, p
    jump_m, jump_p = 1, 0
    delta = n & mask
    while delta > 0:
        if delta & 1:
            jump_m = (jump_m * unit_m) & mask
            jump_p = (jump_p * unit_m + unit_p) & mask
        unit_p = ((unit_m + 1) * unit_p) & mask
        unit_m = (unit_m * unit_m) & mask
        delta >>= 1
    return jump_m, jump_p


def get_iterations(m: int, p: int, origin: int, state: int, mask: int = MASK128) -> int:
    """Number of LCG steps from origin to state. Assumes (m, p) is full period."""
    jump_m, jump_p = m, p
    ordinal = 0
    bit = 1
    address = origin & mask
    state &= mask
    while address != state:
        if (bit & address) != (bit & state):
            address = (address * jump_m + jump_p) & mask
            ordinal |= bit
        jump_p = ((jump_m + 1) * jump_p) & mask
        jump_m = (jump_m * jump_m) & mask
        bit <<= 1
    return ordinal


def get_state(m: int, p: int, origin: int, iterations: int, mask: int = MASK128) -> int:
    """LCG state after the given number of steps from origin."""
    jump_m, jump_p = m, p
    state = origin & mask
    ordinal = iterations & mask
    while ordinal > 0:
        if ordinal & 1:
            state = (state * jump_m + jump_p) & mask
        jump_p = ((jump_m + 1) * jump_p) & mask
        jump_m = (jump_m * jump_m) & mask
        ordinal >>= 1
    return state


def _finalize(x: int) -> int:
    x = ((x ^ (x >> 30)) * 0xBF58476D1CE4E5B9) & MASK64
    x = ((x ^ (x >> 27)) * 0x94D049BB133111EB) & MASK64
    x = ((x ^ (x >> 31)) * 0xD6E8FEB86659FD93) & MASK64
    return x ^ (x >> 32)


class Rnd:
    """Krull64 non-cryptographic RNG: 64-bit output, 128-bit LCG state plus a 64-bit stream.

    Every 64-bit seed selects its own stream of length 2**128, starting at position 0.
    """

    def __init__(self, seed: int = 0):
        self._stream = seed & MASK64
        self._state = self._origin()

    def _origin(self) -> int:
        # Inverted stream bits desynchronize the streams at position 0.
        return ~self._stream & MASK64

    def _increment(self) -> int:
        return ((self._stream << 1) | 1) & MASK128

    @property
    def stream(self) -> int:
        return self._stream

    def set_stream(self, stream: int) -> None:
        """Select a stream and rewind to position 0"""
        self._stream = stream & MASK64
        self.reset()

    def reset(self) -> None:
        self._state = self._origin()

    def step(self) -> int:
        self._state = (self._state * LCG_M65_1 + self._increment()) & MASK128
        return self.get()

    def get(self) -> int:
        """Current 64-bit output, taken from the high state bits"""
        return _finalize(self._state >> 64)

    def next_u64(self) -> int:
        return self.step()

    def next_u32(self) -> int:
        return self.step() & MASK32

    def next_float(self) -> float:
        """Uniform float in [0, 1)"""
        return (self.step() >> 11) * (1.0 / (1 << 53))

    def next_bool(self, p: float) -> bool:
        return self.next_float() < p

    def next_in(self, minimum: int, maximum: int) -> int:
        """Integer in the inclusive range, by modulo reduction"""
        if maximum < minimum:
            raise ValueError(f"Empty range: {minimum}..{maximum}")
        return minimum + self.next_u64() % (maximum - minimum + 1)

    def position(self) -> int:
        return get_iterations(LCG_M65_1, self._increment(), self._origin(), self._state)

    def set_position(self, position: int) -> None:
        self._state = get_state(LCG_M65_1, self._increment(), self._origin(), position)

    def jump(self, steps: int) -> None:
        """Jump forward (steps > 0) or backward (steps < 0) in the stream"""
        self._state = get_state(LCG_M65_1, self._increment(), self._state, steps & MASK128)

    def copy(self) -> 'Rnd':
        clone = Rnd(self._stream)
        clone._state = self._state
        return clone

    def __eq__(self, other) -> bool:
        return isinstance(other, Rnd) and (self._stream, self._state) == (other._stream, other._state)

    def __repr__(self) -> str:
        return f"Rnd(stream={self._stream:#x}, position={self.position()})"
