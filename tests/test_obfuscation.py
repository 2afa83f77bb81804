"""Tests for task text obfuscation and placeholders."""
import re

import pytest

from taskboard.obfuscation import (
    PLACEHOLDER_DESCRIPTIONS,
    generate_placeholder_tasks,
    obfuscate_task,
    obfuscate_tasks,
    obfuscate_text,
)
from taskboard.schema import Task, TaskState


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# obfuscate_text
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_empty_text():
    assert obfuscate_text("") == ""


def test_words_keep_first_and_last_character():
    assert obfuscate_text("Buy milk today") == "B*y m**k t***y"


def test_short_words_fully_masked():
    assert obfuscate_text("a to be") == "* ** **"


def test_punctuation_and_spacing_pass_through():
    assert obfuscate_text("Hello, world!  (draft)") == "H***o, w***d!  (d***t)"


def test_markup_structure_survives():
    assert obfuscate_text("<li>Ship it</li>") == "<**>S**p **</**>"


@pytest.mark.parametrize("text", [
    "Buy milk",
    "snake_case_name and 42 numbers",
    "   leading and trailing   ",
    "émigré café",
    "!!!",
    "x",
])
def test_length_and_non_word_positions_preserved(text):
    masked = obfuscate_text(text)
    assert len(masked) == len(text)
    for original, hidden in zip(text, masked):
        if not re.match(r"\w", original):
            assert hidden == original


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Tasks
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_obfuscate_task_only_touches_description():
    task = Task(
        id="task-1",
        bucket="secret",
        description="Launch plans",
        tags=("q3",),
        order=1500.0,
        state=TaskState.PROG,
    )
    masked = obfuscate_task(task)
    assert masked.description == "L****h p***s"
    assert masked.id == task.id
    assert masked.bucket == task.bucket
    assert masked.tags == task.tags
    assert masked.order == task.order
    assert masked.state == task.state
    # original untouched
    assert task.description == "Launch plans"


def test_obfuscate_tasks_preserves_order_and_length():
    tasks = [Task(id=str(i), bucket="b", description=f"item {i}") for i in range(4)]
    masked = obfuscate_tasks(tasks)
    assert [t.id for t in masked] == ["0", "1", "2", "3"]
    assert obfuscate_tasks([]) == []


def test_placeholder_tasks():
    placeholders = generate_placeholder_tasks("vault", count=7)
    assert len(placeholders) == 7
    assert [p.id for p in placeholders] == [f"placeholder-vault-{i}" for i in range(7)]
    assert [p.order for p in placeholders] == [1000 + i * 100 for i in range(7)]
    assert placeholders[5].description == PLACEHOLDER_DESCRIPTIONS[0]
    assert all(p.state == TaskState.TODO and not p.editing for p in placeholders)
    assert all(p.bucket == "vault" for p in placeholders)


def test_placeholder_default_count():
    assert len(generate_placeholder_tasks("vault")) == 3
