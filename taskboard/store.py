"""
Task board store.

Owns the canonical tasks and buckets. All mutation goes through the
operations below; each one replaces the state snapshot, persists the
durable subset and notifies subscribers before returning.

Rules held here:
  - at most one PendingTask exists at a time, and it is dropped if editing
    moves away while its description is still blank
  - at most one task has ``editing=True``
  - ``order`` is unique within a bucket
  - ``updated_at`` only moves when a field actually changed

Unknown ids and blocked operations are silent no-ops. Nothing here raises
for them; failures of the persistence adapter end up in ``state.error``.
"""
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Mapping, NamedTuple, Optional, Tuple, Union

from .ordering import append_to_bucket, bucket_orders, insert_after, resolve_collision
from .persistence import BoardPersistence
from .schema import (
    BoardState,
    Bucket,
    PendingTask,
    Task,
    TaskPatch,
    TaskState,
    make_task_id,
    parse_snapshot,
    utc_now,
)

logger = logging.getLogger(__name__)

Listener = Callable[[BoardState, str], None]

PERSIST_ERROR = "Failed to persist board"


class BucketCreated(NamedTuple):
    bucket: Bucket
    token: str


class TaskBoardStore:
    """Single-writer, in-process store for one board."""

    def __init__(
        self,
        persistence: Optional[BoardPersistence] = None,
        clock: Callable[[], str] = utc_now,
        id_factory: Callable[[], str] = make_task_id,
    ):
        self.persistence = persistence
        self._clock = clock
        self._new_id = id_factory
        self._listeners: List[Listener] = []
        self._state = BoardState()
        if persistence is not None:
            self._hydrate()

    def _hydrate(self) -> None:
        """Load the durable subset. Editing focus is not restored."""
        data = self.persistence.load()
        if data is None:
            return
        tasks, buckets = parse_snapshot(data)
        tasks = [replace(t, editing=False) if t.editing else t for t in tasks]
        self._state = BoardState(tasks=tuple(tasks), buckets=tuple(buckets))
        logger.info(f"Loaded {len(tasks)} tasks and {len(buckets)} buckets from slot {self.persistence.slot}")

    # ── Subscription ─────────────────────────────────────────────────────────

    def get_state(self) -> BoardState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(state, action)``. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, action: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state, action)
            except Exception as e:
                logger.error(f"Error in {action} listener: {e}")

    def _commit(self, state: BoardState, action: str) -> None:
        previous = self._state
        self._state = state
        durable_changed = state.tasks is not previous.tasks or state.buckets is not previous.buckets
        if self.persistence is not None and durable_changed:
            if not self.persistence.save(state.to_dict()):
                self._state = self._state.update(error=PERSIST_ERROR)
        logger.debug(f"{action}: {len(self._state.tasks)} tasks, {len(self._state.buckets)} buckets")
        self._emit(action)

    # ── Selectors ────────────────────────────────────────────────────────────

    @property
    def tasks(self) -> Tuple[Task, ...]:
        return self._state.tasks

    @property
    def buckets(self) -> Tuple[Bucket, ...]:
        return self._state.buckets

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    @property
    def pending_task(self) -> Optional[PendingTask]:
        for task in self._state.tasks:
            if task.is_pending:
                return task
        return None

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self._state.tasks:
            if task.id == task_id:
                return task
        return None

    def tasks_in_bucket(self, bucket: str) -> List[Task]:
        """Tasks of ``bucket`` sorted by order."""
        return sorted((t for t in self._state.tasks if t.bucket == bucket), key=lambda t: t.order)

    def get_bucket_config(self, name: str) -> Optional[Bucket]:
        for bucket in self._state.buckets:
            if bucket.name == name:
                return bucket
        return None

    # ── Task operations ──────────────────────────────────────────────────────

    @staticmethod
    def _focus(tasks: Tuple[Task, ...], task_id: Optional[str]) -> Tuple[Task, ...]:
        """
        Set ``editing`` on ``task_id`` only, touching no other field.

        A pending task that loses focus while still blank is dropped, so
        the pending slot is free again.
        """
        focused: List[Task] = []
        for t in tasks:
            editing = t.id == task_id
            if t.is_pending and not editing and not t.description.strip():
                logger.debug(f"Discarding blank pending task {t.id}")
                continue
            focused.append(t if t.editing == editing else replace(t, editing=editing))
        return tuple(focused)

    def add_temp_task(self, bucket: str) -> Optional[PendingTask]:
        """Start a new task at the end of ``bucket``. No-op while another is pending."""
        if self.pending_task is not None:
            logger.debug(f"add_temp_task({bucket}) ignored: a pending task already exists")
            return None
        now = self._clock()
        task = PendingTask(
            id=self._new_id(),
            bucket=bucket,
            description="",
            order=append_to_bucket(self._state.tasks, bucket),
            state=TaskState.TODO,
            editing=True,
            created_at=now,
            updated_at=now,
        )
        tasks = (task,) + self._focus(self._state.tasks, None)
        self._commit(self._state.update(tasks=tasks, error=None), "add_temp_task")
        return task

    def add_task_after(self, after_task_id: str, bucket: str) -> Optional[Task]:
        """Insert an empty task directly after ``after_task_id`` and focus it."""
        after = self.get_task(after_task_id)
        if after is None:
            return None
        now = self._clock()
        task = Task(
            id=self._new_id(),
            bucket=bucket,
            description="",
            order=insert_after(self._state.tasks, after, bucket),
            state=TaskState.TODO,
            editing=True,
            created_at=now,
            updated_at=now,
        )
        tasks = self._focus(self._state.tasks, None) + (task,)
        self._commit(self._state.update(tasks=tasks, error=None), "add_task_after")
        return task

    def update_task(self, task_id: str, patch: Union[TaskPatch, Mapping]) -> Optional[Task]:
        """
        Apply the fields of ``patch`` that differ from the task.

        Returns the resulting task, or None when the id is unknown or the
        task was discarded. A patch that leaves the description blank
        deletes the task, as does ending the edit of a still-blank
        pending task. A pending task given a real description is
        promoted to a committed task under a new id.
        """
        task = self.get_task(task_id)
        if task is None:
            return None
        if not isinstance(patch, TaskPatch):
            patch = TaskPatch.from_dict(dict(patch))

        description = patch.changes().get("description")
        if description is not None and not description.strip():
            self._remove(task_id, "discard_task")
            return None

        diff = patch.diff(task)
        if not diff:
            return task

        if task.is_pending and diff.get("editing") is False and not diff.get("description", task.description).strip():
            self._remove(task_id, "discard_task")
            return None

        if "bucket" in diff or "order" in diff:
            bucket = diff.get("bucket", task.bucket)
            existing = bucket_orders(self._state.tasks, bucket, exclude_id=task.id)
            order = resolve_collision(diff.get("order", task.order), existing)
            if order != task.order:
                diff["order"] = order
            else:
                diff.pop("order", None)
            if not diff:
                return task

        now = self._clock()
        if task.is_pending and "description" in diff:
            updated = task.promote(self._new_id(), updated_at=now, **diff)
            action = "commit_task"
        else:
            updated = replace(task, updated_at=now, **diff)
            action = "update_task"

        tasks = tuple(updated if t.id == task_id else t for t in self._state.tasks)
        if diff.get("editing"):
            tasks = self._focus(tasks, updated.id)
        self._commit(self._state.update(tasks=tasks, error=None), action)
        return updated

    def move_task(self, task_id: str, bucket: str, after_task_id: Optional[str] = None) -> Optional[Task]:
        """Move a task to ``bucket``, after ``after_task_id`` or at the end."""
        task = self.get_task(task_id)
        if task is None:
            return None
        if after_task_id is not None:
            after = self.get_task(after_task_id)
            if after is None:
                return None
            order = insert_after(self._state.tasks, after, bucket, exclude_id=task_id)
        else:
            others = [t for t in self._state.tasks if t.id != task_id]
            order = append_to_bucket(others, bucket)
        return self.update_task(task_id, TaskPatch(bucket=bucket, order=order))

    def delete_task(self, task_id: str) -> None:
        self._remove(task_id, "delete_task")

    def _remove(self, task_id: str, action: str) -> None:
        if self.get_task(task_id) is None:
            return
        tasks = tuple(t for t in self._state.tasks if t.id != task_id)
        self._commit(self._state.update(tasks=tasks, error=None), action)

    def editing_task(self, task_id: str) -> None:
        """Give editing focus to ``task_id`` and take it from every other task."""
        if self.get_task(task_id) is None:
            return
        tasks = self._focus(self._state.tasks, task_id)
        if len(tasks) == len(self._state.tasks) and all(a is b for a, b in zip(tasks, self._state.tasks)):
            return
        self._commit(self._state.update(tasks=tasks, error=None), "editing_task")

    # ── Buckets ──────────────────────────────────────────────────────────────

    def create_bucket(self, name: str, token: Optional[str] = None) -> BucketCreated:
        """Add a bucket. No token (or an empty one) makes it public."""
        bucket = Bucket(name=name, token=token or "")
        buckets = self._state.buckets + (bucket,)
        self._commit(self._state.update(buckets=buckets, error=None), "create_bucket")
        logger.info(f"Created {'protected' if bucket.is_protected else 'public'} bucket {name}")
        return BucketCreated(bucket=bucket, token=bucket.token)

    def initialize_with_sample_data(self) -> None:
        """Replace the whole board with the fixed seed set."""
        tasks = _sample_tasks()
        names: List[str] = []
        for task in tasks:
            if task.bucket not in names:
                names.append(task.bucket)
        state = BoardState(
            tasks=tuple(tasks),
            buckets=tuple(Bucket(name=n) for n in names),
            loading=False,
            error=None,
        )
        self._commit(state, "initialize_with_sample_data")

    # ── UI feedback ──────────────────────────────────────────────────────────

    def set_loading(self, loading: bool) -> None:
        if self._state.loading != loading:
            self._commit(self._state.update(loading=loading), "set_loading")

    def set_error(self, error: Optional[str]) -> None:
        if self._state.error != error:
            self._commit(self._state.update(error=error), "set_error")

    def clear_error(self) -> None:
        self.set_error(None)


# ── Seed data ────────────────────────────────────────────────────────────────

SAMPLE_TASKS = (
    # (id, description, bucket, state, created days ago, updated days ago)
    ("sample-1", "Create wireframes and mockups for the new dashboard", "in_progress", TaskState.PROG, 2, 1),
    ("sample-2", "Configure PostgreSQL database and create initial tables", "done", TaskState.DONE, 3, 1),
    ("sample-3", "Add user login and registration functionality", "idea", TaskState.TODO, 1, 1),
    ("sample-4", "Document all REST API endpoints with examples", "idea", TaskState.TODO, 0, 0),
    ("sample-5", "Profile and improve application performance", "in_progress", TaskState.PROG, 1, 0),
)


def _days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


def _sample_tasks() -> List[Task]:
    tasks: List[Task] = []
    for task_id, description, bucket, state, created, updated in SAMPLE_TASKS:
        tasks.append(Task(
            id=task_id,
            bucket=bucket,
            description=description,
            order=append_to_bucket(tasks, bucket),
            state=state,
            created_at=_days_ago(created),
            updated_at=_days_ago(updated),
        ))
    return tasks
