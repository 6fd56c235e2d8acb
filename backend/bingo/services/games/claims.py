from typing import Iterable, List

from .actions import core_action
from .lease import require_controller


def find_invalid_numbers(claimed_numbers: Iterable[int], called_numbers: Iterable[int]) -> List[int]:
    """Numbers in the claim that have not been called, in claim order without repeats."""
    called = set(called_numbers)
    invalid: List[int] = []
    for number in claimed_numbers:
        if number not in called and number not in invalid:
            invalid.append(number)
    return invalid


@core_action('validate', notify=False)
def validate_claim(game_id, caller, claimed_numbers):
    """Check a claim against the called numbers. Read-only; stage is untouched.

    The host is expected to have paused the game first so the display is
    frozen while the claim is checked.
    """
    state = require_controller(game_id, caller.id, for_update=False)
    invalid = find_invalid_numbers(claimed_numbers, state.called_numbers)
    if invalid:
        return {'valid': False, 'invalid_numbers': invalid}
    return {'valid': True}
