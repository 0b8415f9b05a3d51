import pytest

from texture_dna.genome import Genome, ParameterKind, address_hash, name_hash
from texture_dna.grammar import (
    MAX_DEPTH, UNARY_CHOICES, NodeType, UnaryKind, child_complexity, expand, generate,
    node_weights,
)
from texture_dna.textures import (
    BinaryTexture, Fractal, Noise, Shift, Texture, UnaryTexture, VNoise, Voronoi, Camo,
)
from texture_dna.tiling import TileAll, TilingMode

ROOT_NODE_TYPE = name_hash("node type") ^ address_hash([0])


def force_root(genome, node_type):
    index = [member for member in NodeType].index(node_type)
    genome.set_value(ROOT_NODE_TYPE, index)


def test_generation_is_deterministic():
    a = generate(25.0, Genome(3))
    b = generate(25.0, Genome(3))
    assert a.serialize() == b.serialize()


def test_regeneration_is_stable():
    genome = Genome(17)
    first = generate(40.0, genome).serialize()
    log = [(p.hash, p.raw) for p in genome.log()]
    genes = genome.chromosome()
    assert generate(40.0, genome).serialize() == first
    assert [(p.hash, p.raw) for p in genome.log()] == log
    assert genome.chromosome() == genes


def test_low_complexity_yields_a_leaf():
    genome = Genome(42)
    texture = generate(5.0, genome)
    assert genome.parameter(0).name == "node type"
    assert genome.parameter(0).value == "basis"
    assert texture.get_depth() == 0
    assert isinstance(texture, (Noise, VNoise, Voronoi, Camo))


def test_root_node_type_distribution():
    weights = node_weights(30.0).choices()
    total = sum(w for w, _, _ in weights)
    counts = {label: 0 for _, label, _ in weights}
    samples = 1000
    for seed in range(samples):
        genome = Genome(seed)
        generate(30.0, genome)
        counts[genome.parameter(0).value] += 1
    for weight, label, _ in weights:
        assert counts[label] / samples == pytest.approx(weight / total, abs=0.05)


def test_node_weights_thresholds():
    assert node_weights(5.0) == node_weights(0.0)
    low = node_weights(5.0)
    assert low.basis > 100 * max(low.unary, low.binary, low.fractal)
    mid = node_weights(30.0)
    assert mid.unary > mid.basis and mid.binary > mid.basis
    assert node_weights(50.0).basis < mid.basis
    assert node_weights(30.0, is_fractal=True).fractal == 0.0


def test_depth_limit_allows_only_leaves():
    weights = node_weights(1000.0, depth=MAX_DEPTH)
    assert (weights.unary, weights.binary, weights.fractal) == (0.0, 0.0, 0.0)
    assert weights.basis > 0.0


def test_child_complexity():
    assert child_complexity(30.0) == 14.0


@pytest.mark.parametrize("node_type, expected", [
    (NodeType.BASIS, (Noise, VNoise, Voronoi, Camo)),
    (NodeType.UNARY, UnaryTexture),
    (NodeType.BINARY, BinaryTexture),
    (NodeType.FRACTAL, Fractal),
])
def test_forced_root_node_type(node_type, expected):
    genome = Genome(5)
    force_root(genome, node_type)
    texture = generate(20.0, genome)
    assert isinstance(texture, expected)
    assert genome.parameter(0).value == node_type.value


def test_fractals_do_not_nest():
    for seed in range(20):
        genome = Genome(seed)
        force_root(genome, NodeType.FRACTAL)
        texture = generate(60.0, genome)
        assert isinstance(texture, Fractal)
        assert not any(isinstance(node, Fractal) for node in texture.get_all_nodes()[1:])


def test_subtree_parameters_nest_under_their_choice():
    genome = Genome(8)
    force_root(genome, NodeType.UNARY)
    generate(20.0, genome)
    log = genome.log()
    assert log[0].address == (0,)
    assert all(len(p.address) >= 2 for p in log[1:])
    assert log[1].name == "unary node"


def test_tree_depth_is_bounded():
    for seed in range(10):
        texture = generate(200.0, Genome(seed))
        assert texture.get_depth() <= MAX_DEPTH


def test_tiling_reaches_every_leaf():
    texture = generate(40.0, Genome(2), TilingMode.ALL)
    leaves = [node for node in texture.get_all_nodes() if not node.children]
    assert leaves
    assert all(leaf.hasher == TileAll() for leaf in leaves)


def test_expand_does_not_reset():
    genome = Genome(1)
    genome.integer("prefix")
    texture = expand(genome, 10.0, False, TileAll())
    assert isinstance(texture, Texture)
    assert genome.log()[0].name == "prefix"
    assert genome.address == [2]


def test_edit_preserves_unrelated_parameters():
    genome = Genome(31)
    force_root(genome, NodeType.BINARY)
    generate(20.0, genome)
    before = {p.hash: p.raw for p in genome.log() if p.kind is ParameterKind.ORDERED}
    # The first ordered parameter of the root operator: its amount or width.
    amount = next(p for p in genome.log()
                  if p.kind is ParameterKind.ORDERED and len(p.address) == 2)
    genome.set_value(amount.hash, (amount.raw + 12345) % (1 << 32))
    generate(20.0, genome)
    after = {p.hash: p.raw for p in genome.log() if p.kind is ParameterKind.ORDERED}
    changed = [h for h in before if before[h] != after.get(h)]
    assert changed == [amount.hash]


def test_edited_zero_seed_still_generates():
    genome = Genome(12)
    force_root(genome, NodeType.UNARY)
    shift = [rule for _, _, rule in UNARY_CHOICES].index(UnaryKind.SHIFT)
    genome.set_value(name_hash("unary node") ^ address_hash([0, 0]), shift)
    genome.set_value(name_hash("seed") ^ address_hash([0, 1]), 0)
    texture = generate(20.0, genome)
    assert isinstance(texture, Shift)
    assert texture.seed == 0
    assert texture.at([0.25, 0.5, 0.75]).shape == (3,)
