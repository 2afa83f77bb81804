"""Tests for fractional ordering keys."""
import math
from types import SimpleNamespace

import pytest

from taskboard.ordering import (
    ORDER_EPSILON,
    append_to_bucket,
    insert_after,
    resolve_collision,
)


def t(task_id, order, bucket="b"):
    return SimpleNamespace(id=task_id, order=order, bucket=bucket)


class TestAppendToBucket:

    def test_empty_bucket_starts_at_1000(self):
        assert append_to_bucket([], "b") == 1000

    def test_other_buckets_are_ignored(self):
        tasks = [t("x", 5000, bucket="other")]
        assert append_to_bucket(tasks, "b") == 1000

    def test_appends_after_max(self):
        tasks = [t("a", 1000), t("b", 3500), t("c", 2000)]
        assert append_to_bucket(tasks, "b") == 4500

    def test_always_greater_than_existing(self):
        tasks = []
        for i in range(20):
            order = append_to_bucket(tasks, "b")
            assert all(order > x.order for x in tasks)
            tasks.append(t(str(i), order))


class TestInsertAfter:

    def test_midpoint_between_neighbours(self):
        first, second = t("a", 1000), t("b", 2000)
        assert insert_after([first, second], first, "b") == 1500

    def test_last_task_gets_step_after(self):
        first, second = t("a", 1000), t("b", 2000)
        assert insert_after([first, second], second, "b") == 3000

    def test_picks_nearest_following_neighbour(self):
        tasks = [t("a", 1000), t("c", 4000), t("b", 2000)]
        assert insert_after(tasks, tasks[0], "b") == 1500

    def test_exclude_id_skips_moving_task(self):
        tasks = [t("a", 1000), t("b", 2000), t("c", 3000)]
        # Moving "b" right after "a": "b" itself is no longer a neighbour
        assert insert_after(tasks, tasks[0], "b", exclude_id="b") == 2000

    def test_collision_bumps_by_epsilon(self):
        low = 1000.0
        high = math.nextafter(low, math.inf)
        tasks = [t("a", low), t("b", high)]
        naive = (low + high) / 2
        assert naive in (low, high)

        order = insert_after(tasks, tasks[0], "b")
        assert order not in (low, high)
        assert order == pytest.approx(naive + ORDER_EPSILON, abs=1e-9)

    def test_repeated_inserts_stay_unique(self):
        tasks = [t("a", 1000), t("z", 2000)]
        anchor = tasks[0]
        for i in range(60):
            order = insert_after(tasks, anchor, "b")
            tasks.append(t(f"n{i}", order))
        orders = [x.order for x in tasks]
        assert len(orders) == len(set(orders))


class TestResolveCollision:

    def test_free_candidate_is_returned(self):
        assert resolve_collision(1500.0, {1000.0, 2000.0}) == 1500.0

    def test_smallest_free_step(self):
        existing = {1500.0, 1500.0 + ORDER_EPSILON}
        assert resolve_collision(1500.0, existing) == 1500.0 + 2 * ORDER_EPSILON
