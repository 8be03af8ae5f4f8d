from typing import Iterable, Hashable


def is_correct(selected: Iterable[Hashable], correct: Iterable[Hashable]) -> bool:
    """
    Order-independent exact match between a user's selection and the correct set.

    No partial credit: sizes must match and, once both are sorted, every
    position must be equal.
    """
    selected = sorted(selected)
    correct = sorted(correct)
    return len(selected) == len(correct) and all(
        s == c for s, c in zip(selected, correct)
    )


def compute_score(correct_count: int, total_questions: int) -> int:
    """Percentage of correctly answered questions, rounded to an integer."""
    if total_questions <= 0:
        raise ValueError("A quiz needs at least one question to be scored")
    return round(correct_count / total_questions * 100)


def has_passed(score: int, pass_threshold: int) -> bool:
    return score >= pass_threshold
