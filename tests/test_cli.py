import pytest
from click.testing import CliRunner

from texture_dna.cli import cli, make_preamble, parse_preamble
from texture_dna.genome import Genome
from texture_dna.tiling import TilingMode


@pytest.fixture
def runner():
    return CliRunner()


def test_preamble_round_trip():
    preamble = make_preamble(17.5, TilingMode.XY)
    assert preamble == "complexity=17.5 tiling=xy"
    assert parse_preamble(preamble) == (17.5, TilingMode.XY)
    assert parse_preamble("") == (20.0, TilingMode.NONE)


def test_generate_writes_genome(runner, tmp_path):
    out = tmp_path / "a.dna"
    result = runner.invoke(cli, ['generate', '--seed', '3', '--complexity', '15',
                                 '--tiling', 'all', '--out', str(out), '--code'])
    assert result.exit_code == 0, result.output
    assert "Genome saved" in result.output
    assert "tile_all()" in result.output
    preamble, genome = Genome.load(str(out))
    assert preamble == "complexity=15.0 tiling=all"
    assert genome.genes


def test_generate_with_image(runner, tmp_path):
    out = tmp_path / "a.dna"
    image = tmp_path / "a.png"
    result = runner.invoke(cli, ['generate', '--out', str(out), '--image', str(image),
                                 '--size', '16'])
    assert result.exit_code == 0, result.output
    assert image.exists()


def test_mutate_writes_child(runner, tmp_path):
    parent = tmp_path / "parent.dna"
    child = tmp_path / "child.dna"
    runner.invoke(cli, ['generate', '--seed', '4', '--out', str(parent)])
    result = runner.invoke(cli, ['mutate', str(parent), '--seed', '1', '--rate', '1.0',
                                 '--out', str(child)])
    assert result.exit_code == 0, result.output
    preamble, genome = Genome.load(str(child))
    assert preamble == "complexity=20.0 tiling=none"
    assert genome.genes != Genome.load(str(parent))[1].genes

    result = runner.invoke(cli, ['mutate', str(parent), '--finetune', '--out', str(child)])
    assert result.exit_code == 0, result.output


def test_render(runner, tmp_path):
    genome = tmp_path / "g.dna"
    image = tmp_path / "g.png"
    runner.invoke(cli, ['generate', '--seed', '5', '--complexity', '10', '--out', str(genome)])
    result = runner.invoke(cli, ['render', str(genome), '--out', str(image), '--size', '16'])
    assert result.exit_code == 0, result.output
    assert image.exists()

    frames = tmp_path / "frames"
    result = runner.invoke(cli, ['render', str(genome), '--out', str(frames), '--size', '8',
                                 '--frames', '2'])
    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in frames.iterdir()) == ["frame_0000.png", "frame_0001.png"]


def test_params_lists_the_log(runner, tmp_path):
    genome = tmp_path / "g.dna"
    runner.invoke(cli, ['generate', '--seed', '6', '--out', str(genome)])
    result = runner.invoke(cli, ['params', str(genome)])
    assert result.exit_code == 0, result.output
    assert "node type" in result.output.splitlines()[0]


def test_missing_genome_fails_cleanly(runner, tmp_path):
    result = runner.invoke(cli, ['params', str(tmp_path / "missing.dna")])
    assert result.exit_code != 0
    assert "Could not load genome" in result.output


def test_bad_preamble_fails_cleanly(runner, tmp_path):
    genome = tmp_path / "g.dna"
    genome.write_text("complexity=lots tiling=none\n")
    result = runner.invoke(cli, ['render', str(genome)])
    assert result.exit_code != 0
    assert "Bad genome preamble" in result.output
