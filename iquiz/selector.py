"""
Random selection of distinct question indices.

The selector draws indices uniformly from [0, bank_size) and rejects
duplicates until it has ``count`` distinct ones. For the small counts a quiz
needs (5 out of a bank of 20 or so) this takes only a few draws.
"""

import random
from typing import List, Optional

from iquiz.errors import InvalidArgument

_default_rng = random.Random()


def select_distinct(bank_size: int, count: int,
                    rng: Optional[random.Random] = None) -> List[int]:
    """
    Pick ``count`` distinct indices in [0, bank_size), in draw order.

    Args:
        bank_size: Number of questions available (K).
        count: Number of questions wanted (M).
        rng: Random source; pass a seeded random.Random for reproducible
            selections.

    Returns:
        A list of ``count`` distinct ints.

    Raises:
        InvalidArgument: if count is negative or larger than bank_size.
    """
    if count < 0:
        raise InvalidArgument(f"cannot select a negative number of questions ({count})")
    if count > bank_size:
        raise InvalidArgument(
            f"cannot select {count} distinct questions from a bank of {bank_size}"
        )

    rng = rng or _default_rng
    selected: List[int] = []

    while len(selected) < count:
        index = rng.randrange(bank_size)
        if index in selected:
            continue  # duplicate, draw again
        selected.append(index)

    return selected
