"""
Turn order arithmetic.

Pure functions over the roster's letter counts. Roster order never changes
during play, so a turn is just an index and advancing it is a walk around the
circle that skips eliminated players.
"""

from collections.abc import Sequence

from bomb.logic.settings import ELIMINATION_LETTERS


def is_eligible(letters: int) -> bool:
    return letters < ELIMINATION_LETTERS


def eligible_count(letters: Sequence[int]) -> int:
    return sum(1 for count in letters if is_eligible(count))


def next_eligible(letters: Sequence[int], index: int) -> int | None:
    """Return the first eligible index after `index`, wrapping around.

    Returns `index` itself when it is the only eligible player, and None when
    nobody is eligible.
    """
    size = len(letters)
    for step in range(1, size + 1):
        candidate = (index + step) % size
        if is_eligible(letters[candidate]):
            return candidate
    return None


def previous_eligible(letters: Sequence[int], index: int) -> int | None:
    """Return the last eligible index before `index`, wrapping around."""
    size = len(letters)
    for step in range(1, size + 1):
        candidate = (index - step) % size
        if is_eligible(letters[candidate]):
            return candidate
    return None


def first_eligible(letters: Sequence[int]) -> int | None:
    if not letters:
        return None
    return next_eligible(letters, len(letters) - 1)
