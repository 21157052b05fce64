"""Die helpers for roll tables.

Draws use the process-wide ``random`` source: uniform, unseeded and not
cryptographically secure.
"""

import random

MIN_DIE_SIZE = 1
MAX_DIE_SIZE = 10000

# Die sizes offered when building a table
COMMON_DIE_SIZES: tuple[int, ...] = (4, 6, 8, 10, 12, 20, 100)


def roll_die(sides: int) -> int:
    """Roll a single die.

    Args:
        sides: Number of faces, 1..MAX_DIE_SIZE

    Returns:
        Uniform integer in [1, sides]

    Raises:
        ValueError: If sides is out of range

    Examples:
        >>> roll_die(20)  # Returns something like 15
    """
    if not isinstance(sides, int) or isinstance(sides, bool):
        raise ValueError(f"Invalid die size: {sides!r}")
    if sides < MIN_DIE_SIZE or sides > MAX_DIE_SIZE:
        raise ValueError(f"Die size must be between {MIN_DIE_SIZE} and {MAX_DIE_SIZE}")
    return random.randint(1, sides)


def recommended_die_size(item_count: int) -> int:
    """Pick the smallest common die that fits the number of items.

    Args:
        item_count: Number of candidate items

    Returns:
        One of COMMON_DIE_SIZES
    """
    for sides in COMMON_DIE_SIZES[:-1]:
        if item_count <= sides:
            return sides
    return COMMON_DIE_SIZES[-1]
