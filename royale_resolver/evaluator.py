"""
Guess evaluation for the Wordle Royale resolver.

Compares a guess against the target, position by position, under the
standard duplicate-letter rule: a letter repeated in the guess is marked
PRESENT at most as many times as it remains unmatched in the target.
"""

from collections import Counter
from enum import Enum
from typing import List, Sequence


class Verdict(str, Enum):
    """Per-position classification."""
    CORRECT = "correct"
    PRESENT = "present"
    ABSENT = "absent"


def evaluate(guess: str, target: str) -> List[Verdict]:
    """
    Evaluate a guess against the target.

    Pass 1 marks exact matches and removes them from the pool of target
    letters. Pass 2 walks the remaining positions left to right, marking a
    letter PRESENT only while the pool still holds an unconsumed copy.

    Args:
        guess: Upper-case guess, same length as target
        target: Upper-case target word

    Returns:
        One Verdict per position
    """
    if len(guess) != len(target):
        raise ValueError("guess and target must have the same length")

    verdict: List[Verdict] = [Verdict.ABSENT] * len(target)
    pool: Counter = Counter()

    for i, (g, t) in enumerate(zip(guess, target)):
        if g == t:
            verdict[i] = Verdict.CORRECT
        else:
            pool[t] += 1

    for i, g in enumerate(guess):
        if verdict[i] is Verdict.CORRECT:
            continue
        if pool[g] > 0:
            verdict[i] = Verdict.PRESENT
            pool[g] -= 1

    return verdict


def is_solved(verdict: Sequence[Verdict]) -> bool:
    """True when every position is CORRECT."""
    return all(v is Verdict.CORRECT for v in verdict)
