"""
Local post-processing of a page of tasks.

The Tasks API returns a flat, unordered page. These functions narrow it by
status, order it, and rebuild the parent/child tree. Each stage takes a
sequence and returns a new list; nothing here talks to the API.

All sorts are stable insertion sorts: already ordered server output is
handled in linear time, and equal keys keep their relative order across
repeated sorts.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from ...exceptions.tasks import DanglingParentError
from .constants import (
    FILTER_COMPLETED, FILTER_NEEDS_ACTION,
    SORT_POSITION, SORT_LATEST_FIRST, SORT_OLDEST_FIRST, VALID_SORTS,
    ORPHANS_PROMOTE, ORPHANS_RAISE, VALID_ORPHAN_POLICIES
)
from .types import Task

logger = logging.getLogger(__name__)


def status_filter(tasks: Iterable[Task], status: str) -> List[Task]:
    """
    Keeps the tasks whose status equals `status`, in their original order.

    Args:
        tasks: Flat sequence of tasks.
        status: 'completed' or 'needsAction'.

    Returns:
        The matching tasks.
    """
    return [task for task in tasks if task.status == status]


def positional_sort(tasks: Iterable[Task]) -> List[Task]:
    """
    Orders tasks by ascending position key, compared as strings.
    A task without a position sorts as the empty string.
    """
    ordered = list(tasks)
    keys = [task.position or '' for task in ordered]

    for i in range(1, len(ordered)):
        j = i
        while j > 0 and keys[j] < keys[j - 1]:
            keys[j], keys[j - 1] = keys[j - 1], keys[j]
            ordered[j], ordered[j - 1] = ordered[j - 1], ordered[j]
            j -= 1

    return ordered


def chronological_sort(tasks: Iterable[Task]) -> List[Task]:
    """
    Orders tasks latest first by their `updated` time.

    Every timestamp is parsed before anything moves, so a malformed one
    leaves no partially sorted result behind.

    Raises:
        MalformedTimestampError: If any task's `updated` is not RFC 3339.
    """
    ordered = list(tasks)
    if len(ordered) < 2:
        return ordered
    times = [task.updated_time() for task in ordered]

    for i in range(1, len(ordered)):
        j = i
        while j > 0 and times[j] > times[j - 1]:
            times[j], times[j - 1] = times[j - 1], times[j]
            ordered[j], ordered[j - 1] = ordered[j - 1], ordered[j]
            j -= 1

    return ordered


def reverse_chronological_sort(tasks: Iterable[Task]) -> List[Task]:
    """
    Orders tasks oldest first.

    This is the latest-first order reversed, not an ascending sort: tasks
    with equal timestamps come out in the opposite of their latest-first
    relative order.

    Raises:
        MalformedTimestampError: If any task's `updated` is not RFC 3339.
    """
    ordered = chronological_sort(tasks)

    i, j = 0, len(ordered) - 1
    while i < j:
        ordered[i], ordered[j] = ordered[j], ordered[i]
        i += 1
        j -= 1

    return ordered


_SORTS = {
    SORT_POSITION: positional_sort,
    SORT_LATEST_FIRST: chronological_sort,
    SORT_OLDEST_FIRST: reverse_chronological_sort,
}


def apply_sort(tasks: Iterable[Task], sort: Optional[str]) -> List[Task]:
    """
    Applies the named sort. None keeps the order as given.

    Raises:
        ValueError: If `sort` is not a known sort.
    """
    ordered = list(tasks)
    if sort is None:
        return ordered
    if sort not in _SORTS:
        raise ValueError(f"Invalid sort: {sort}. Must be one of: {', '.join(VALID_SORTS)}")
    return _SORTS[sort](ordered)


def raise_tasks(tasks: Iterable[Task], orphans: str = ORPHANS_PROMOTE) -> Tuple[List[Task], List[str]]:
    """
    Rebuilds the task tree from a flat page.

    The page is sorted by position first, whatever order it arrives in, so
    top-level tasks and every `children` list come out in positional order.
    Parents are resolved against the whole page rather than only the tasks
    seen so far: Google positions are only comparable among siblings, so a
    subtask can legitimately sort ahead of its parent.

    A task whose parent is not in the page at all (for example a visible
    subtask of a completed, filtered-out parent) is handled by `orphans`:
    'promote' places it at top level in positional order and reports its
    id; 'raise' refuses the page. Tasks whose parents form a cycle are
    handled the same way, with the cycle cut at its first task in
    positional order.

    Any `children` the input tasks already carry are replaced.

    Args:
        tasks: Flat sequence of tasks.
        orphans: 'promote' or 'raise'.

    Returns:
        Tuple of (top-level tasks, ids of promoted orphans).

    Raises:
        DanglingParentError: Under the 'raise' policy, if any parent is missing
            or parents form a cycle.
    """
    if orphans not in VALID_ORPHAN_POLICIES:
        raise ValueError(f"Invalid orphan policy: {orphans}. Must be one of: {', '.join(VALID_ORPHAN_POLICIES)}")

    ordered = positional_sort(tasks)

    by_id = {}
    for task in ordered:
        task.children = []
        if task.task_id:
            by_id[task.task_id] = task

    top_level = set()
    orphan_ids = []
    for task in ordered:
        if task.is_top_level():
            top_level.add(id(task))
            continue

        parent = by_id.get(task.parent)
        if parent is None or parent is task:
            orphan_ids.append(task.task_id)
            top_level.add(id(task))
            continue

        parent.children.append(task)

    # Tasks whose parent chain loops back on itself are unreachable from any
    # root; each cycle is cut at its first task in positional order.
    reached = set()
    for task in ordered:
        if id(task) in top_level:
            _mark_reached(task, reached)
    for task in ordered:
        if id(task) in reached:
            continue
        parent = by_id[task.parent]
        parent.children = [child for child in parent.children if child is not task]
        orphan_ids.append(task.task_id)
        top_level.add(id(task))
        _mark_reached(task, reached)

    raised_tasks = [task for task in ordered if id(task) in top_level]

    if orphan_ids:
        if orphans == ORPHANS_RAISE:
            raise DanglingParentError(orphan_ids)
        logger.warning("Promoted %d task(s) with a missing parent to top level: %s",
                       len(orphan_ids), ', '.join(str(task_id) for task_id in orphan_ids))

    return raised_tasks, orphan_ids


def _mark_reached(root: Task, reached: set) -> None:
    stack = [root]
    while stack:
        task = stack.pop()
        if id(task) in reached:
            continue
        reached.add(id(task))
        stack.extend(task.children)


def process_tasks(
        tasks: Iterable[Task],
        filter: Optional[str] = None,
        sort: Optional[str] = None,
        build_hierarchy: bool = True,
        orphans: str = ORPHANS_PROMOTE
) -> Tuple[List[Task], List[str]]:
    """
    Runs the local stages of a list query: status filter, sort, hierarchy.

    Each stage consumes the previous stage's output. 'overdue' is narrowed
    server-side only and is not filtered here.

    Args:
        tasks: Flat page of tasks as fetched.
        filter: 'completed', 'needsAction', 'overdue' or None.
        sort: 'position', 'latest_first', 'oldest_first' or None.
        build_hierarchy: Nest subtasks under their parents.
        orphans: Orphan policy passed to the hierarchy builder.

    Returns:
        Tuple of (resulting tasks, ids of promoted orphans).
    """
    items = list(tasks)

    if filter == FILTER_COMPLETED or filter == FILTER_NEEDS_ACTION:
        items = status_filter(items, filter)

    items = apply_sort(items, sort)

    if not build_hierarchy:
        return items, []

    return raise_tasks(items, orphans)
