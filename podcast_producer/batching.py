"""Duration estimation and duration-bounded batching."""

from typing import Callable, Sequence, TypeVar

from podcast_producer.constants import WORDS_PER_MINUTE

T = TypeVar("T")


def estimate_duration(text: str) -> float:
    """Estimated spoken duration of text in seconds (150 words/minute)."""
    words = len(text.split())
    return words / WORDS_PER_MINUTE * 60


def batch_items(
    items: Sequence[T],
    max_duration: float,
    duration_fn: Callable[[T], float],
) -> list[list[T]]:
    """Greedily pack items into order-preserving batches.

    An item joins the current batch while the batch's total estimated
    duration stays within max_duration. An item that alone exceeds the
    ceiling still gets a batch of its own; items are never split or dropped.
    """
    if max_duration <= 0:
        raise ValueError(f"max_duration must be positive, got {max_duration}")

    batches: list[list[T]] = []
    current: list[T] = []
    current_duration = 0.0

    for item in items:
        duration = duration_fn(item)
        if current and current_duration + duration > max_duration:
            batches.append(current)
            current = []
            current_duration = 0.0
        current.append(item)
        current_duration += duration

    if current:
        batches.append(current)

    return batches
