"""
Fractional ordering keys for tasks within a bucket.

Orders are floats spaced ORDER_STEP apart on append. Inserting between two
neighbours takes the midpoint, so no sibling is ever renumbered. Keys are
unique per bucket; buckets do not share an ordering.

Repeated inserts at the same spot halve the gap each time. There is no
rebalancing pass; once the gap falls below float precision the collision
bump takes over and the new key may land past the next neighbour.
"""
from typing import Iterable, Optional, Set

ORDER_STEP = 1000.0
ORDER_EPSILON = 0.001


def bucket_orders(tasks: Iterable, bucket: str, exclude_id: Optional[str] = None) -> Set[float]:
    """Order values currently used in ``bucket``."""
    return {
        t.order for t in tasks
        if t.bucket == bucket and (exclude_id is None or t.id != exclude_id)
    }


def resolve_collision(candidate: float, existing: Set[float]) -> float:
    """Return ``candidate + k * ORDER_EPSILON`` for the smallest k >= 0 not in ``existing``."""
    k = 0
    value = candidate
    while value in existing:
        k += 1
        value = candidate + k * ORDER_EPSILON
    return value


def append_to_bucket(tasks: Iterable, bucket: str) -> float:
    """Order that sorts after every task already in ``bucket``."""
    orders = bucket_orders(tasks, bucket)
    if not orders:
        return ORDER_STEP
    return max(orders) + ORDER_STEP


def insert_after(tasks: Iterable, after_task, bucket: str,
                 exclude_id: Optional[str] = None) -> float:
    """
    Order that sorts directly after ``after_task`` in ``bucket``.

    Takes the midpoint between ``after_task`` and its next neighbour, or
    ``after_task.order + ORDER_STEP`` when it is last. A candidate that is
    already taken is bumped by ORDER_EPSILON until free.

    ``exclude_id`` leaves one task out of the bucket, used when moving a
    task that is already in it.
    """
    existing = bucket_orders(tasks, bucket, exclude_id=exclude_id)
    later = [o for o in existing if o > after_task.order]
    if later:
        candidate = (after_task.order + min(later)) / 2
    else:
        candidate = after_task.order + ORDER_STEP
    return resolve_collision(candidate, existing)
