"""
texture_dna - Procedural textures grown from tree-addressed genomes

A generation pass walks a stochastic grammar. Each random decision is a
named draw from a Genome that keys its genes on tree addresses, so editing or
mutating one parameter leaves the rest of the texture in place.
"""

__version__ = "0.1.0"
__author__ = "Texture DNA Project"

from .errors import TextureDNAError, NavigationError, NotInteractiveError, ChromosomeFormatError
from .rnd import Rnd
from .genome import Genome, Parameter, ParameterKind, name_hash, address_hash, xerp
from .mutation import mutate, finetune
from .tiling import TilingMode
from .textures import Texture
from .grammar import generate, expand, node_weights, NodeType
from .evaluator import Evaluator

__all__ = [
    'TextureDNAError', 'NavigationError', 'NotInteractiveError', 'ChromosomeFormatError',
    'Rnd',
    'Genome', 'Parameter', 'ParameterKind', 'name_hash', 'address_hash', 'xerp',
    'mutate', 'finetune',
    'TilingMode',
    'Texture',
    'generate', 'expand', 'node_weights', 'NodeType',
    'Evaluator',
]
