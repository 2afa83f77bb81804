"""
Masked views of task text for viewers without a bucket token.

Only ``description`` is masked; ids, states, orders and tags pass through
so obfuscated tasks still render with working keys.
"""
import re
from dataclasses import replace
from typing import Iterable, List

from .schema import Task, TaskState

WORD_RE = re.compile(r"\w+")

PLACEHOLDER_DESCRIPTIONS = (
    "T*** i* p*****s",
    "A****** t**k f** t*** b****t",
    "S*****g i*****t f** t*** a**a",
    "R***w a** u***e c****t",
    "I*****t n*w f*****e",
)


def _mask_word(match: "re.Match") -> str:
    word = match.group(0)
    if len(word) <= 2:
        return "*" * len(word)
    return word[0] + "*" * (len(word) - 2) + word[-1]


def obfuscate_text(text: str) -> str:
    """Mask every word, keeping its first and last character and its length."""
    if not text:
        return ""
    return WORD_RE.sub(_mask_word, text)


def obfuscate_task(task: Task) -> Task:
    return replace(task, description=obfuscate_text(task.description or ""))


def obfuscate_tasks(tasks: Iterable[Task]) -> List[Task]:
    return [obfuscate_task(t) for t in tasks]


def generate_placeholder_tasks(bucket: str, count: int = 3) -> List[Task]:
    """Synthetic masked tasks shown for a protected bucket with nothing visible."""
    return [
        Task(
            id=f"placeholder-{bucket}-{index}",
            bucket=bucket,
            description=PLACEHOLDER_DESCRIPTIONS[index % len(PLACEHOLDER_DESCRIPTIONS)],
            order=1000.0 + index * 100,
            state=TaskState.TODO,
            editing=False,
        )
        for index in range(count)
    ]
