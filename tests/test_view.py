"""Tests for bucket views, progress and bucket URLs."""
import pytest

from taskboard.routing import Route, bucket_path, parse_route
from taskboard.schema import Bucket, Task, TaskState
from taskboard.view import bucket_view, is_authenticated, progress, render_progress_bar


@pytest.fixture
def secret_board(store):
    store.create_bucket("secret", "tok1")
    store.create_bucket("open")
    for text, state in [("Second step", "prog"), ("First step", "todo"), ("Shipped", "done")]:
        pending = store.add_temp_task("secret")
        store.update_task(pending.id, {"description": text, "state": state, "editing": False})
    return store


class TestAuthentication:

    def test_public_and_unknown_buckets_are_open(self):
        assert is_authenticated(None, "")
        assert is_authenticated(Bucket("open"), "anything")

    def test_protected_bucket_needs_exact_token(self):
        bucket = Bucket("secret", "tok1")
        assert is_authenticated(bucket, "tok1")
        assert not is_authenticated(bucket, "wrong")
        assert not is_authenticated(bucket, "")
        assert not is_authenticated(bucket, None)


class TestBucketView:

    def test_authenticated_view_shows_raw_tasks(self, secret_board):
        view = bucket_view(secret_board.get_state(), "secret", "tok1")
        assert view.authenticated
        assert [t.description for t in view.active] == ["Second step", "First step"]
        assert [t.description for t in view.done] == ["Shipped"]

    def test_unauthenticated_view_is_obfuscated(self, secret_board):
        view = bucket_view(secret_board.get_state(), "secret", "wrong")
        assert view.obfuscated
        raw = {t.id: t.description for t in secret_board.tasks}
        for task in view.tasks:
            assert task.description != raw[task.id]
            assert len(task.description) == len(raw[task.id])
        assert [t.description for t in view.done] == ["S*****d"]

    def test_tasks_sorted_by_order(self, secret_board):
        first = secret_board.tasks_in_bucket("secret")[0]
        secret_board.move_task(first.id, "secret")
        view = bucket_view(secret_board.get_state(), "secret", "tok1")
        assert [t.description for t in view.active] == ["First step", "Second step"]

    def test_empty_protected_bucket_shows_placeholders(self, store):
        store.create_bucket("vault", "tok")
        view = bucket_view(store.get_state(), "vault", "")
        assert [t.id for t in view.active] == [f"placeholder-vault-{i}" for i in range(3)]

    def test_empty_public_bucket_is_empty(self, store):
        store.create_bucket("open")
        view = bucket_view(store.get_state(), "open", "")
        assert view.tasks == []

    def test_to_dict(self, secret_board):
        data = bucket_view(secret_board.get_state(), "secret", "").to_dict()
        assert data["protected"] is True
        assert data["authenticated"] is False
        assert data["progress"] == {"total": 3, "done": 1, "in_progress": 1, "percent": 33}
        assert data["progress_bar"] == "33% [███▒▒▒░░░░]"
        assert "tok1" not in str(data)


class TestProgress:

    def _tasks(self, *states):
        return [Task(id=str(i), bucket="b", state=TaskState(s)) for i, s in enumerate(states)]

    def test_empty(self):
        stats = progress([])
        assert (stats.total, stats.percent) == (0, 0)
        assert render_progress_bar([]) == "0% [░░░░░░░░░░]"

    def test_counts_and_bar(self):
        tasks = self._tasks("done", "done", "prog", "todo", "blck")
        stats = progress(tasks)
        assert (stats.total, stats.done, stats.in_progress, stats.percent) == (5, 2, 1, 40)
        assert render_progress_bar(tasks) == "40% [████▒▒░░░░]"

    def test_bar_length(self):
        tasks = self._tasks("done", "todo")
        assert render_progress_bar(tasks, bar_length=4) == "50% [██░░]"


class TestRouting:

    def test_bucket_path(self):
        assert bucket_path("team") == "/bucket/team"
        assert bucket_path("team", "a b&c") == "/bucket/team?token=a+b%26c"

    def test_parse_bucket_route(self):
        route = parse_route("/bucket/team?token=a+b%26c")
        assert route == Route(path="/bucket", bucket="team", token="a b&c")
        assert route.is_bucket_view

    def test_parse_without_token(self):
        assert parse_route("/bucket/team").token == ""

    @pytest.mark.parametrize("url", ["/", "/bucket", "/bucket/a/b", "/other"])
    def test_other_paths_route_home(self, url):
        route = parse_route(url)
        assert route.is_home
        assert route.bucket == ""

    def test_round_trip_with_special_name(self):
        route = parse_route(bucket_path("q3 plans", "tok"))
        assert (route.bucket, route.token) == ("q3 plans", "tok")
