import random
from typing import List, Optional

TOTAL_NUMBERS = 90


def generate_number_sequence(seed: Optional[str] = None) -> List[int]:
    """Return a shuffled permutation of 1..90.

    Passing a seed makes the order reproducible (demo and test setups);
    live games leave it unset.
    """
    rng = random.Random(seed) if seed is not None else random
    numbers = list(range(1, TOTAL_NUMBERS + 1))
    rng.shuffle(numbers)
    return numbers


def is_valid_sequence(numbers) -> bool:
    return (
        numbers is not None
        and len(numbers) == TOTAL_NUMBERS
        and set(numbers) == set(range(1, TOTAL_NUMBERS + 1))
    )
