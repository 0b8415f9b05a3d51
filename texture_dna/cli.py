"""
texture_dna/cli.py - Command-line interface
"""
import logging
import os
import time
from typing import Tuple

import click

from .evaluator import Evaluator
from .genome import Genome
from .grammar import generate as generate_texture
from .mutation import finetune, mutate as mutate_genome
from .textures import Texture
from .tiling import TilingMode

DEFAULT_COMPLEXITY = 20.0
TILING_NAMES = [mode.value for mode in TilingMode]


def make_preamble(complexity: float, tiling: TilingMode) -> str:
    return f"complexity={complexity!r} tiling={tiling.value}"


def parse_preamble(preamble: str) -> Tuple[float, TilingMode]:
    """Read generation settings from a genome file preamble, with defaults for missing fields"""
    fields = dict(item.split('=', 1) for item in preamble.split() if '=' in item)
    try:
        complexity = float(fields.get('complexity', DEFAULT_COMPLEXITY))
        tiling = TilingMode(fields.get('tiling', TilingMode.NONE.value))
    except ValueError as e:
        raise click.ClickException(f"Bad genome preamble {preamble!r}: {e}")
    return complexity, tiling


def load_genome(path: str) -> Tuple[Genome, float, TilingMode]:
    loaded = Genome.load(path)
    if loaded is None:
        raise click.ClickException(f"Could not load genome: {path}")
    preamble, genome = loaded
    complexity, tiling = parse_preamble(preamble)
    return genome, complexity, tiling


def _finish(genome: Genome, texture: Texture, complexity: float, tiling: TilingMode,
            out: str, image: str, size: int, code: bool) -> None:
    genome.save(out, make_preamble(complexity, tiling))
    click.echo(f"Genome saved: {out} ({len(genome.genes)} genes, "
               f"{len(texture.get_all_nodes())} nodes, depth {texture.get_depth()})")
    if code:
        click.echo(texture.serialize())
    if image:
        start_time = time.time()
        Evaluator().render_image(texture, size=(size, size), filename=image)
        click.echo(f"Image saved: {image} ({time.time() - start_time:.1f}s)")


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def cli(verbose):
    """Texture DNA - procedural textures grown from addressable genomes"""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')


@cli.command()
@click.option('--seed', '-s', default=0, type=int, help='Random seed of the new genome')
@click.option('--complexity', '-c', default=DEFAULT_COMPLEXITY, help='Complexity budget')
@click.option('--tiling', '-t', type=click.Choice(TILING_NAMES), default=TilingMode.NONE.value,
              help='Axes on which the texture repeats')
@click.option('--out', '-o', required=True, help='Genome file to write')
@click.option('--image', '-i', help='Also render a PNG image')
@click.option('--size', default=256, help='Image size in pixels')
@click.option('--code', is_flag=True, help='Print the texture constructor expression')
def generate(seed, complexity, tiling, out, image, size, code):
    """Grow a texture from a fresh genome"""
    mode = TilingMode(tiling)
    genome = Genome(seed)
    texture = generate_texture(complexity, genome, mode)
    _finish(genome, texture, complexity, mode, out, image, size, code)


@cli.command()
@click.argument('parent')
@click.option('--seed', '-s', default=0, type=int, help='Mutation seed')
@click.option('--rate', '-r', default=0.2, help='Per-parameter mutation probability (0.0-1.0)')
@click.option('--finetune', 'fine', is_flag=True, help='Redraw continuous parameters only')
@click.option('--out', '-o', required=True, help='Genome file to write')
@click.option('--image', '-i', help='Also render a PNG image')
@click.option('--size', default=256, help='Image size in pixels')
@click.option('--code', is_flag=True, help='Print the texture constructor expression')
def mutate(parent, seed, rate, fine, out, image, size, code):
    """Derive a child genome from a parent genome file"""
    genome, complexity, tiling = load_genome(parent)
    # A generation pass rebuilds the parameter log that mutation walks.
    generate_texture(complexity, genome, tiling)
    child = (finetune if fine else mutate_genome)(genome, seed, rate)
    texture = generate_texture(complexity, child, tiling)
    _finish(child, texture, complexity, tiling, out, image, size, code)


@cli.command()
@click.argument('genome_file')
@click.option('--out', '-o', help='Output filename (optional)')
@click.option('--size', default=512, help='Image size in pixels')
@click.option('--z', default=0.0, help='Depth coordinate of the rendered slice')
@click.option('--frames', default=0, help='Render an animation of N frames along Z')
def render(genome_file, out, size, z, frames):
    """Render a genome file"""
    genome, complexity, tiling = load_genome(genome_file)
    texture = generate_texture(complexity, genome, tiling)
    evaluator = Evaluator()
    base_name = os.path.splitext(os.path.basename(genome_file))[0]
    start_time = time.time()
    if frames > 0:
        out = out or f"{base_name}_anim"
        os.makedirs(out, exist_ok=True)
        for i, frame in enumerate(evaluator.create_animation_frames(
                texture, num_frames=frames, size=(size, size), z_range=(z, z + 1.0))):
            frame.save(os.path.join(out, f"frame_{i:04d}.png"))
        click.echo(f"Animation frames saved to: {out}/")
    else:
        out = out or f"{base_name}.png"
        evaluator.render_image(texture, size=(size, size), z=z, filename=out)
        click.echo(f"Image saved: {out}")
    logging.getLogger(__name__).debug("Render time: %.2fs", time.time() - start_time)


@cli.command()
@click.argument('genome_file')
def params(genome_file):
    """List the parameters drawn when generating a genome file"""
    genome, complexity, tiling = load_genome(genome_file)
    generate_texture(complexity, genome, tiling)
    for i, parameter in enumerate(genome.log()):
        indent = '  ' * (len(parameter.address) - 1)
        choices = f" [{' | '.join(parameter.choices)}]" if parameter.choices else ''
        click.echo(f"{i:4d} {parameter.hash:020d} {indent}{parameter.name} = "
                   f"{parameter.value}{choices}")


if __name__ == '__main__':
    cli()
