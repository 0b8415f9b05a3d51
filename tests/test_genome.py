import pytest

from texture_dna.errors import ChromosomeFormatError, NavigationError
from texture_dna.genome import (
    ADDRESS_LEVELS, Genome, ParameterKind, address_hash, name_hash, parse_chromosome, xerp,
)
from texture_dna.rnd import MASK32

ABC = [(1.0, 'a', 'A'), (1.0, 'b', 'B'), (1.0, 'c', 'C')]


def test_draws_are_deterministic_per_seed():
    a, b = Genome(5), Genome(5)
    assert a.integer("x") == b.integer("x")
    assert a.real("y") == b.real("y")
    assert Genome(5).integer("x") != Genome(6).integer("x")


def test_draws_advance_the_address():
    genome = Genome()
    genome.integer("a")
    genome.real("b")
    assert genome.address == [2]


def test_draws_are_lazy_and_idempotent():
    genome = Genome(1)
    first = genome.integer("x")
    genes = genome.chromosome()
    genome.reset()
    assert genome.integer("x") == first
    assert genome.rnd.position() == 1
    assert genome.chromosome() == genes


def test_same_name_at_different_addresses_differs():
    genome = Genome()
    h0 = genome.parameter_hash("x")
    genome.integer("x")
    assert genome.parameter_hash("x") != h0


def test_ranges():
    genome = Genome(2)
    for i in range(50):
        assert 3 <= genome.integer_in(f"i{i}", 3, 7) <= 7
        assert 0.0 <= genome.real(f"r{i}") < 1.0
        assert -2.0 <= genome.real_in(f"f{i}", -2.0, 2.0) <= 2.0
        assert 2.0 <= genome.real_transformed(f"x{i}", lambda t: xerp(2.0, 32.0, t)) <= 32.0
    with pytest.raises(ValueError):
        genome.integer_in("empty", 4, 3)


def test_set_value_overrides_draw():
    genome = Genome()
    genome.set_value(genome.parameter_hash("x"), 123)
    assert genome.integer("x") == 123


def test_set_value_validates():
    genome = Genome()
    with pytest.raises(ValueError):
        genome.set_value(1, MASK32 + 1)
    with pytest.raises(ValueError):
        genome.set_value(-1, 0)


def test_real_in_endpoints():
    genome = Genome()
    genome.set_value(genome.parameter_hash("lo"), 0)
    assert genome.real_in("lo", 1.0, 5.0) == 1.0
    genome.set_value(genome.parameter_hash("hi"), MASK32)
    assert genome.real_in("hi", 1.0, 5.0) == pytest.approx(5.0)


def test_categorical_small_raw_indexes_directly():
    genome = Genome()
    genome.set_value(genome.parameter_hash("pick"), 2)
    assert genome.choice("pick", ABC) == 'C'


def test_categorical_large_raw_uses_roulette():
    genome = Genome()
    genome.set_value(genome.parameter_hash("pick"), MASK32)
    assert genome.choice("pick", ABC) == 'C'
    genome.set_value(genome.parameter_hash("pick2"), 1 << 31)
    assert genome.choice("pick2", ABC) == 'B'


def test_categorical_skips_zero_weight_slots():
    choices = [(1.0, 'a', 'A'), (0.0, 'b', 'B'), (1.0, 'c', 'C')]
    genome = Genome()
    # Slot 1 has no weight, so raw 1 falls through to the roulette.
    genome.set_value(genome.parameter_hash("pick"), 1)
    assert genome.choice("pick", choices) == 'A'
    genome.set_value(genome.parameter_hash("pick2"), MASK32)
    assert genome.choice("pick2", choices) == 'C'
    assert genome.log()[0].choices == ('a', 'c')


def test_categorical_rejects_degenerate_weights():
    genome = Genome()
    with pytest.raises(ValueError):
        genome.choice("none", [])
    with pytest.raises(ValueError):
        genome.index("zero", [(0.0, 'a'), (0.0, 'b')])


def test_log_records_parameters():
    genome = Genome(3)
    genome.integer_in("count", 1, 4)
    label = genome.choice("kind", ABC)
    log = genome.log()
    assert [p.name for p in log] == ["count", "kind"]
    assert log[0].kind is ParameterKind.ORDERED
    assert log[0].maximum == 3
    assert log[1].kind is ParameterKind.CATEGORICAL
    assert log[1].is_structural
    assert log[1].value.upper() == label
    assert log[1].address == (1,)
    assert genome.parameter(1) == log[1]
    assert genome.parameter_count() == 2


def test_non_interactive_genome_keeps_no_log():
    genome = Genome(3, interactive=False)
    genome.integer("x")
    assert genome.log() == []
    assert len(genome.genes) == 1


def test_reset_keeps_chromosome_and_clears_log():
    genome = Genome(4)
    genome.integer("x")
    genome.reset()
    assert genome.address == [0]
    assert genome.log() == []
    assert len(genome.chromosome()) == 1


def test_group_requires_a_drawn_parameter():
    with pytest.raises(NavigationError):
        Genome().group()


def test_ungroup_at_root_fails():
    with pytest.raises(NavigationError):
        Genome().ungroup()


def test_group_nests_under_previous_parameter():
    genome = Genome()
    genome.integer("parent")
    genome.group()
    assert genome.address == [0, 0]
    genome.integer("child")
    assert genome.address == [0, 1]
    genome.ungroup()
    assert genome.address == [1]


def test_generate_opens_a_branch():
    genome = Genome()
    seen = []

    def inner(g, tag):
        seen.append((tag, list(g.address)))
        g.integer("x")
        return tag

    assert genome.generate(inner, "t") == "t"
    assert seen == [("t", [0, 0])]
    assert genome.address == [1]


def test_call_dispatches_under_the_choice():
    genome = Genome()
    genome.set_value(genome.parameter_hash("rule"), 1)

    def dispatch(g, rule, scale):
        g.real("inner")
        return rule * scale

    assert genome.call("rule", ABC, dispatch, 2) == 'BB'
    inner = genome.log()[1]
    assert inner.name == "inner"
    assert inner.address == (0, 0)
    assert genome.address == [1]


def test_identity_survives_edits_elsewhere():
    def grow(genome):
        genome.reset()
        branch = genome.index("branch", [(1.0, 'short'), (1.0, 'long')])
        genome.group()
        for i in range(3 if branch else 1):
            genome.real(f"leaf {i}")
        genome.ungroup()
        return genome.real("sibling")

    genome = Genome(9)
    before = grow(genome)
    branch_hash = genome.log()[0].hash
    genome.set_value(branch_hash, 1 - genome.log()[0].raw)
    assert grow(genome) == before


def test_address_hash_uses_last_levels():
    tail = [3] * ADDRESS_LEVELS
    assert address_hash([1, 2] + tail) == address_hash([7] + tail)
    assert address_hash([0]) != address_hash([0, 0])


def test_name_hash_is_stable():
    assert name_hash("seed") == name_hash("seed")
    assert name_hash("seed") != name_hash("Seed")
    assert 0 <= name_hash("seed") < (1 << 64)


def test_dumps_and_loads():
    genome = Genome(12)
    for i in range(5):
        genome.integer(f"p{i}")
    text = genome.dumps("complexity=20.0")
    lines = text.splitlines()
    assert lines[0] == "complexity=20.0"
    assert [int(line.split()[0]) for line in lines[1:]] == sorted(genome.genes)
    preamble, loaded = Genome.loads(text)
    assert preamble == "complexity=20.0"
    assert loaded.chromosome() == genome.chromosome()


def test_preamble_must_be_one_line():
    with pytest.raises(ValueError):
        Genome().dumps("a\nb")


def test_save_and_load(tmp_path):
    path = tmp_path / "genome.dna"
    genome = Genome(13)
    genome.real("x")
    genome.save(str(path), "hello")
    preamble, loaded = Genome.load(str(path))
    assert preamble == "hello"
    assert loaded.chromosome() == genome.chromosome()


def test_load_failures_return_none(tmp_path):
    assert Genome.load(str(tmp_path / "missing.dna")) is None
    path = tmp_path / "bad.dna"
    path.write_text("preamble\n1 2 3\n")
    assert Genome.load(str(path)) is None


def test_parse_chromosome():
    assert parse_chromosome("") == ('', {})
    assert parse_chromosome("p\n\n5 6\n") == ('p', {5: 6})
    with pytest.raises(ChromosomeFormatError) as info:
        parse_chromosome("p\n1 2\nx 3\n")
    assert info.value.line_number == 3
    with pytest.raises(ChromosomeFormatError):
        parse_chromosome(f"p\n1 {MASK32 + 1}\n")
    with pytest.raises(ChromosomeFormatError):
        parse_chromosome(f"p\n{1 << 64} 1\n")
    for line in ("1_000 5", "+1 5", "1 -5", "\u0661 5"):
        with pytest.raises(ChromosomeFormatError):
            parse_chromosome(f"p\n{line}\n")


def test_xerp():
    assert xerp(2.0, 32.0, 0.0) == pytest.approx(2.0)
    assert xerp(2.0, 32.0, 0.5) == pytest.approx(8.0)
    assert xerp(2.0, 32.0, 1.0) == pytest.approx(32.0)
