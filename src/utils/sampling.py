"""
Random Sampling Helpers

Generic pickers used by the subtype selector:
- weighted_pick: cumulative-weight (inverse CDF) sampling over anything with `weight`
- random_pick: uniform pick from a sequence

Both accept an optional `random.Random` so callers and tests can seed them.
"""

import random
from typing import Optional, Protocol, Sequence, TypeVar


class HasWeight(Protocol):
    weight: float


T = TypeVar("T")
W = TypeVar("W", bound=HasWeight)


def weighted_pick(items: Sequence[W], rng: Optional[random.Random] = None) -> Optional[W]:
    """
    Pick one item with probability proportional to its weight.

    Draws a roll in [0, total_weight) and walks the items in order,
    subtracting each weight; the item where the remainder first drops
    to <= 0 wins. If float rounding exhausts the walk, the last item is
    returned, so a non-empty input always yields an item.

    Args:
        items: Candidates, each with a positive `weight`
        rng: Optional random source (defaults to the module-level generator)

    Returns:
        The chosen item, or None when `items` is empty
    """
    if not items:
        return None

    rng = rng or random
    total_weight = sum(item.weight for item in items)
    roll = rng.random() * total_weight

    for item in items:
        roll -= item.weight
        if roll <= 0:
            return item

    return items[-1]


def random_pick(items: Sequence[T], rng: Optional[random.Random] = None) -> Optional[T]:
    """Uniformly pick one element; None for an empty sequence."""
    if not items:
        return None
    rng = rng or random
    return rng.choice(items)
