"""
texture_dna/mutation.py - Deriving child genomes from a parent's parameter log

Both operators walk the parent's logged parameters and build the child
chromosome from them. Categorical (structural) parameters are always copied, so
the child regenerates the same tree shape; only ordered knobs move.
"""
from .errors import NotInteractiveError
from .genome import Genome, Parameter, ParameterKind, xerp


def _require_log(parent: Genome, operation: str) -> None:
    if not parent.is_interactive():
        raise NotInteractiveError(f"{operation} requires a genome generated in interactive mode")


def _walk(parameter: Parameter, rnd) -> int:
    """Bounded log-scale random walk around the raw value of an ordered parameter"""
    raw, maximum = parameter.raw, parameter.maximum
    if rnd.next_bool(0.5):
        adjust = xerp(1.0, max(1.0, float(maximum - raw)), rnd.next_float())
    else:
        adjust = -xerp(1.0, max(1.0, float(raw)), rnd.next_float())
    return int(round(min(max(raw + adjust, 0.0), float(maximum))))


def mutate(parent: Genome, seed: int, mutation_p: float) -> Genome:
    """Return a child whose ordered parameters are each walked with probability mutation_p"""
    _require_log(parent, "mutate")
    rnd = parent.rnd_factory(seed)
    child = Genome(rnd.next_u64(), rnd_factory=parent.rnd_factory)
    for parameter in parent.log():
        mutating = rnd.next_float() < mutation_p
        if mutating and parameter.kind is ParameterKind.ORDERED:
            child.set_value(parameter.hash, _walk(parameter, rnd))
        else:
            child.set_value(parameter.hash, parameter.raw)
    return child


def finetune(parent: Genome, seed: int, mutation_p: float) -> Genome:
    """Return a child that redraws ordered parameters with probability mutation_p.

    Redrawn parameters are left out of the child chromosome and drawn afresh
    from the child's random source on its next generation pass.
    """
    _require_log(parent, "finetune")
    rnd = parent.rnd_factory(seed)
    child = Genome(rnd.next_u64(), rnd_factory=parent.rnd_factory)
    for parameter in parent.log():
        redraw = rnd.next_float() < mutation_p
        if parameter.kind is ParameterKind.CATEGORICAL or not redraw:
            child.set_value(parameter.hash, parameter.raw)
    return child
