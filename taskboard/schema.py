"""
Task board schema.

Task lifecycle:
  (absent) → Pending (editing) → Task (committed)
                              ↘ discarded (empty content / delete)

Every record is frozen. The store replaces records and collections on
each mutation instead of editing them in place, so a changed reference
always means changed content.
"""
import math
import time
import uuid
from enum import Enum
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Optional, Tuple, List, Dict, Any

from .ordering import append_to_bucket


def utc_now() -> str:
    """ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


def make_task_id() -> str:
    """Generate a sortable unique task ID (ms-precision timestamp + random hex)."""
    ts = int(time.time() * 1000)
    rand = uuid.uuid4().hex[:8]
    return f"task-{ts}-{rand}"


def parse_order(value: Any) -> float:
    """Order as a finite float. NaN and infinities cannot be sorted or sent as JSON."""
    order = float(value)
    if not math.isfinite(order):
        raise ValueError(f"order must be a finite number, got {value!r}")
    return order


class TaskState(Enum):
    """Valid task states on the board."""
    TODO = "todo"
    PROG = "prog"
    DONE = "done"
    BLCK = "blck"

    @classmethod
    def from_str(cls, value: Any) -> "TaskState":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.TODO


@dataclass(frozen=True)
class Task:
    """A committed task."""

    id: str
    bucket: str
    description: str = ""
    parent_id: Optional[str] = None   # stored only, no hierarchy checks
    tags: Tuple[str, ...] = ()
    order: float = 1000.0
    state: TaskState = TaskState.TODO
    editing: bool = False
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    @property
    def is_pending(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "bucket": self.bucket,
            "parent_id": self.parent_id,
            "tags": list(self.tags),
            "order": self.order,
            "state": self.state.value,
            "editing": self.editing,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Deserialize from dict. Tolerates the legacy card shape."""
        description = data.get("description")
        if description is None:
            description = data.get("title", "")
        bucket = data.get("bucket")
        if bucket is None:
            bucket = data.get("status", "")
        parent_id = data.get("parent_id")
        now = utc_now()
        return cls(
            id=str(data["id"]),
            bucket=str(bucket),
            description=str(description or ""),
            parent_id=str(parent_id) if parent_id is not None else None,
            tags=tuple(str(t) for t in (data.get("tags") or [])),
            order=parse_order(data.get("order", 1000.0)),
            state=TaskState.from_str(data.get("state", "todo")),
            editing=bool(data.get("editing", False)),
            created_at=data.get("created_at") or now,
            updated_at=data.get("updated_at") or now,
        )


@dataclass(frozen=True)
class PendingTask(Task):
    """A task created in memory that has not been committed yet.

    Its ``id`` is only a handle for the editing UI. ``promote`` is the one
    way to turn it into a committed ``Task``.
    """

    @property
    def is_pending(self) -> bool:
        return True

    def promote(self, task_id: str, **changes) -> Task:
        values = {f.name: getattr(self, f.name) for f in fields(Task)}
        values.update(changes)
        values["id"] = task_id
        return Task(**values)


@dataclass(frozen=True)
class Bucket:
    """A named group of tasks. A non-empty token makes it protected."""

    name: str
    token: str = ""

    @property
    def is_protected(self) -> bool:
        return self.token != ""

    def authenticate(self, token: Optional[str]) -> bool:
        # Plain equality on purpose: the token is a shared link secret.
        if not self.is_protected:
            return True
        return token == self.token

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "token": self.token}

    @classmethod
    def from_dict(cls, data: Any) -> "Bucket":
        if isinstance(data, str):
            return cls(name=data)
        return cls(name=str(data["name"]), token=str(data.get("token") or ""))


class _Unset:
    """Marker for patch fields the caller did not set."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

PATCH_FIELDS = ("description", "bucket", "parent_id", "tags", "order", "state", "editing")


@dataclass(frozen=True)
class TaskPatch:
    """Explicit set of task fields to change. Unset fields are left alone."""

    description: Any = UNSET
    bucket: Any = UNSET
    parent_id: Any = UNSET
    tags: Any = UNSET
    order: Any = UNSET
    state: Any = UNSET
    editing: Any = UNSET

    def changes(self) -> Dict[str, Any]:
        """
        Return the set fields, normalized to the Task field types.

        Raises TypeError for a value of the wrong kind (a string for
        ``tags``, a number for ``bucket``) and ValueError for an order that
        is not a finite number.
        """
        out: Dict[str, Any] = {}
        for name in PATCH_FIELDS:
            value = getattr(self, name)
            if value is UNSET:
                continue
            if name == "tags":
                if value is None:
                    value = ()
                if not isinstance(value, (list, tuple)):
                    raise TypeError(f"tags must be a list, got {type(value).__name__}")
                value = tuple(str(t) for t in value)
            elif name == "state":
                value = TaskState.from_str(value)
            elif name == "order":
                if isinstance(value, bool):
                    raise TypeError("order must be a number")
                value = parse_order(value)
            elif name == "editing":
                if not isinstance(value, bool):
                    raise TypeError(f"editing must be a boolean, got {type(value).__name__}")
            elif name == "bucket":
                if not isinstance(value, str) or not value.strip():
                    raise TypeError("bucket must be a non-empty string")
            elif name == "parent_id":
                if isinstance(value, bool) or not isinstance(value, (str, int, type(None))):
                    raise TypeError(f"parent_id must be a string, got {type(value).__name__}")
                value = None if value is None else str(value)
            elif name == "description":
                if not isinstance(value, (str, type(None))):
                    raise TypeError(f"description must be a string, got {type(value).__name__}")
                value = "" if value is None else value
            out[name] = value
        return out

    def diff(self, task: Task) -> Dict[str, Any]:
        """Fields whose value differs from ``task``."""
        return {
            name: value
            for name, value in self.changes().items()
            if getattr(task, name) != value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskPatch":
        """Build a patch from a plain mapping, ignoring unknown and read-only keys."""
        return cls(**{k: v for k, v in data.items() if k in PATCH_FIELDS})


@dataclass(frozen=True)
class BoardState:
    """Immutable snapshot of the whole board."""

    tasks: Tuple[Task, ...] = ()
    buckets: Tuple[Bucket, ...] = ()
    loading: bool = False
    error: Optional[str] = None

    def update(self, **changes) -> "BoardState":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Durable subset: committed tasks and buckets."""
        return {
            "tasks": [t.to_dict() for t in self.tasks if not t.is_pending],
            "buckets": [b.to_dict() for b in self.buckets],
        }


# ── Snapshot loading ─────────────────────────────────────────────────────────

def parse_snapshot(data: Any) -> Tuple[List[Task], List[Bucket]]:
    """
    Best-effort load of a persisted board.

    Accepts the current ``{tasks, buckets}`` shape, the same wrapped in a
    ``{state, version}`` envelope, and the legacy ``{cards, buckets, nextId}``
    shape. Records that cannot be read are dropped.
    """
    if not isinstance(data, dict):
        return [], []
    if isinstance(data.get("state"), dict):
        data = data["state"]

    raw_tasks = data.get("tasks")
    if raw_tasks is None:
        raw_tasks = data.get("cards") or []

    buckets: List[Bucket] = []
    seen_buckets = set()
    for raw in data.get("buckets") or []:
        try:
            bucket = Bucket.from_dict(raw)
        except (KeyError, TypeError, AttributeError):
            continue
        if bucket.name not in seen_buckets:
            seen_buckets.add(bucket.name)
            buckets.append(bucket)

    tasks: List[Task] = []
    for raw in raw_tasks:
        if not isinstance(raw, dict) or raw.get("id") is None:
            continue
        try:
            task = Task.from_dict(raw)
        except (TypeError, ValueError):
            continue
        if "order" not in raw:
            task = replace(task, order=append_to_bucket(tasks, task.bucket))
        tasks.append(task)

    return tasks, buckets

