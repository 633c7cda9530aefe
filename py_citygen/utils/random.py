"""
Random number generation utilities.

There is no global generator: every graph receives its own AleaPRNG. These
helpers build generators from seeds and derive reproducible child seeds for
recursively spawned sub-graphs.
"""

from typing import Optional, Union

from ..core.alea_prng import AleaPRNG

Seed = Union[str, int, float]


def create_prng(seed: Optional[Seed] = None, default: str = "default") -> AleaPRNG:
    """
    Build an Alea PRNG for the given seed.

    Args:
        seed: Seed string or number. ``None`` falls back to ``default``.
        default: Seed used when ``seed`` is None

    Returns:
        Fresh AleaPRNG instance
    """
    return AleaPRNG(default if seed is None else seed)


def derive_seed(parent: Seed, *labels) -> str:
    """
    Derive a child seed from a parent seed and a path of labels.

    ``derive_seed("city", "block", 3)`` gives ``"city:block:3"``; the same
    parent and labels always give the same child.
    """
    return ":".join([str(parent)] + [str(label) for label in labels])
