"""
texture_dna/shaping.py - Easing curves and distance metrics
"""
from enum import Enum

import numpy as np


def smooth3(x):
    return (3.0 - 2.0 * x) * x * x


def smooth5(x):
    return ((x * 6.0 - 15.0) * x + 10.0) * x * x * x


def smooth7(x):
    x2 = x * x
    return x2 * x2 * (35.0 - 84.0 * x + (70.0 - 20.0 * x) * x2)


def smooth9(x):
    x2 = x * x
    return ((((70.0 * x - 315.0) * x + 540.0) * x - 420.0) * x + 126.0) * x2 * x2 * x


def softsign(x):
    return x / (1.0 + np.abs(x))


def softexp(x):
    """Exp-like response: linear-inverse below zero, quadratic above, softexp(0) = 1"""
    p = np.maximum(x, 0.0)
    return p * p + p + 1.0 / (1.0 + p - x)


def wave(f, x):
    """Wave stitched together from two symmetric pieces of f, peaking at the origin"""
    u = (x - 1.0) / 4.0
    u = (u - np.floor(u)) * 2.0
    w0 = np.minimum(u, 1.0)
    w1 = u - w0
    return 1.0 - (f(w0) - f(w1)) * 2.0


class Ease(Enum):
    ID = 'id'
    SMOOTH3 = 'smooth3'
    SMOOTH5 = 'smooth5'
    SMOOTH7 = 'smooth7'
    SMOOTH9 = 'smooth9'
    SQRT = 'sqrt'
    SQUARED = 'squared'
    CUBED = 'cubed'
    UP_ARC = 'up arc'
    DOWN_ARC = 'down arc'

    def at(self, x):
        if self is Ease.ID:
            return x
        if self is Ease.SMOOTH3:
            return smooth3(x)
        if self is Ease.SMOOTH5:
            return smooth5(x)
        if self is Ease.SMOOTH7:
            return smooth7(x)
        if self is Ease.SMOOTH9:
            return smooth9(x)
        if self is Ease.SQRT:
            return np.sqrt(np.maximum(x, 0.0))
        if self is Ease.SQUARED:
            return x * x
        if self is Ease.CUBED:
            return x * x * x
        if self is Ease.UP_ARC:
            return 1.0 - np.sqrt(np.maximum(0.0, 1.0 - x * x))
        return np.sqrt(np.maximum(0.0, (2.0 - x) * x))

    def code(self) -> str:
        return f"Ease.{self.name}"


class Distance(Enum):
    NORM1 = '1-norm'
    NORM2 = '2-norm'
    NORM4 = '4-norm'
    NORM8 = '8-norm'
    NORM_MAX = 'max norm'

    def compute(self, v: np.ndarray) -> np.ndarray:
        """Length of vectors along the last axis"""
        a = np.abs(v)
        if self is Distance.NORM1:
            return np.sum(a, axis=-1)
        if self is Distance.NORM2:
            return np.sqrt(np.sum(a * a, axis=-1))
        if self is Distance.NORM4:
            return np.sum(a ** 4, axis=-1) ** 0.25
        if self is Distance.NORM8:
            return np.sum(a ** 8, axis=-1) ** 0.125
        return np.max(a, axis=-1)

    def code(self) -> str:
        return f"Distance.{self.name}"
