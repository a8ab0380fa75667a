"""Apply ordered text edits against a single original string."""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from .errors import EditConflictError
from .models import EditOperation, OffsetAccumulator

logger = logging.getLogger("svelte_image.patcher")


def check_edits(original: str, edits: Sequence[EditOperation]) -> None:
    """Raise unless ``edits`` are in bounds, ascending and non-overlapping."""
    previous_end = 0
    for index, edit in enumerate(edits):
        if edit.start < 0 or edit.end > len(original) or edit.start > edit.end:
            raise EditConflictError(
                f"Edit {index} spans [{edit.start}, {edit.end}) outside "
                f"a text of length {len(original)}"
            )
        if edit.start < previous_end:
            raise EditConflictError(
                f"Edit {index} at {edit.start} overlaps or precedes the previous "
                f"edit ending at {previous_end}"
            )
        previous_end = edit.end


def apply_edits(original: str, edits: Iterable[EditOperation]) -> str:
    """Splice ``edits`` into ``original`` in order.

    Every edit is expressed in coordinates of ``original``. The accumulator
    tracks how far earlier replacements have shifted the text, so each edit
    lands at ``[start + delta, end + delta)`` of the partially edited string.
    """
    ordered: List[EditOperation] = list(edits)
    check_edits(original, ordered)

    content = original
    offset = OffsetAccumulator()
    for edit in ordered:
        start, end = offset.locate(edit)
        content = content[:start] + edit.replacement + content[end:]
        offset.advance(edit)
    logger.debug("Applied %d edit(s), length delta %+d", offset.applied, offset.delta)
    return content


def sort_edits(edits: Iterable[EditOperation]) -> List[EditOperation]:
    """Order edits by original position; ties keep their given order."""
    return sorted(edits, key=lambda edit: (edit.start, edit.end))
