"""Automatic remediation of duplicate task names."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .tasks import Task
from .validation import Conflict, ConflictType

logger = logging.getLogger(__name__)


@dataclass
class FixAction:
    """What one auto-fix pass did for one conflict."""

    action: str
    source_conflict: Conflict
    kept_id: str
    deleted_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_ids


def auto_fix_duplicate_tasks(
    conflicts: list[Conflict],
    tasks: list[Task],
    delete: Callable[[str], None],
) -> list[FixAction]:
    """
    Keep one task per duplicated name and soft-delete the rest.

    The survivor is the lexicographically smallest ID among the duplicates
    that are not already deleted. IDs don't encode creation order, so this
    only guarantees the same choice on every run.

    delete(task_id) should raise on failure. Failures are recorded and the
    remaining duplicates are still processed.
    """
    actions = []
    task_map = {t.id: t for t in tasks}

    for conflict in conflicts:
        if conflict.type != ConflictType.DUPLICATE_TASK_NAME:
            continue

        candidates = sorted(
            {tid for tid in conflict.task_ids if tid in task_map and not task_map[tid].is_deleted}
        )
        if len(candidates) <= 1:
            continue

        keep, *duplicates = candidates
        name = task_map[keep].name
        deleted, failed = [], []

        for task_id in duplicates:
            try:
                delete(task_id)
            except Exception as e:
                logger.warning(f'Failed to delete duplicate "{name}" ({task_id}): {e}')
                failed.append(task_id)
            else:
                deleted.append(task_id)

        if deleted:
            message = (
                f'Removed {len(deleted)} duplicate task(s) with name "{name}" '
                f"(kept ID: {keep}, removed: {', '.join(deleted)})"
            )
            if failed:
                message += f" (failed to remove: {', '.join(failed)})"
        else:
            message = f'Failed to remove duplicates for "{name}": {", ".join(failed)}'

        actions.append(
            FixAction(
                action=message,
                source_conflict=conflict,
                kept_id=keep,
                deleted_ids=deleted,
                failed_ids=failed,
            )
        )

    return actions
