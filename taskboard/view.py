"""
Read-side helpers for anything that renders a bucket.

The store never filters by token itself. Callers go through
``bucket_view`` so viewers without the bucket token only ever see
obfuscated descriptions.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Iterable, Dict, Any

from .obfuscation import obfuscate_tasks, generate_placeholder_tasks
from .schema import BoardState, Bucket, Task, TaskState


def is_authenticated(bucket: Optional[Bucket], token: Optional[str]) -> bool:
    """Unknown and public buckets need no token."""
    if bucket is None:
        return True
    return bucket.authenticate(token)


@dataclass
class Progress:
    total: int = 0
    done: int = 0
    in_progress: int = 0

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.done / self.total * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "done": self.done,
            "in_progress": self.in_progress,
            "percent": self.percent,
        }


def progress(tasks: Iterable[Task]) -> Progress:
    tasks = list(tasks)
    return Progress(
        total=len(tasks),
        done=sum(1 for t in tasks if t.state == TaskState.DONE),
        in_progress=sum(1 for t in tasks if t.state == TaskState.PROG),
    )


def render_progress_bar(tasks: Iterable[Task], bar_length: int = 10) -> str:
    """Text bar like ``40% [████▒▒░░░░]``: done, in progress, remaining."""
    stats = progress(tasks)
    if stats.total == 0:
        return f"0% [{'░' * bar_length}]"
    done_len = round(stats.done / stats.total * bar_length)
    prog_len = round(stats.in_progress / stats.total * bar_length)
    empty_len = max(0, bar_length - done_len - prog_len)
    return f"{stats.percent}% [{'█' * done_len}{'▒' * prog_len}{'░' * empty_len}]"


@dataclass
class BucketView:
    """What a viewer holding ``token`` may see of one bucket."""

    name: str
    bucket: Optional[Bucket]
    authenticated: bool
    active: List[Task] = field(default_factory=list)
    done: List[Task] = field(default_factory=list)

    @property
    def tasks(self) -> List[Task]:
        return self.active + self.done

    @property
    def obfuscated(self) -> bool:
        return not self.authenticated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bucket": self.name,
            "protected": bool(self.bucket and self.bucket.is_protected),
            "authenticated": self.authenticated,
            "active": [t.to_dict() for t in self.active],
            "done": [t.to_dict() for t in self.done],
            "progress": progress(self.tasks).to_dict(),
            "progress_bar": render_progress_bar(self.tasks),
        }


def bucket_view(state: BoardState, name: str, token: Optional[str] = "") -> BucketView:
    bucket = next((b for b in state.buckets if b.name == name), None)
    authenticated = is_authenticated(bucket, token)

    tasks = sorted((t for t in state.tasks if t.bucket == name), key=lambda t: t.order)
    if not authenticated:
        tasks = obfuscate_tasks(tasks) or generate_placeholder_tasks(name)

    return BucketView(
        name=name,
        bucket=bucket,
        authenticated=authenticated,
        active=[t for t in tasks if t.state != TaskState.DONE],
        done=[t for t in tasks if t.state == TaskState.DONE],
    )
