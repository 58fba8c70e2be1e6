"""Priority ordering of workflows for operator attention."""

from __future__ import annotations

from typing import Iterable, List

from .constants import PRIORITY_RANK
from .contracts import WorkflowInstance


def priority_rank(priority: str) -> int:
    return PRIORITY_RANK.get(priority, 0)


class PriorityScheduler:
    """Rank workflows: highest priority first, newest first within a priority.

    Both passes use Python's stable sort, so instances with equal priority and
    equal ``created_at`` keep their input order.
    """

    def order(self, instances: Iterable[WorkflowInstance]) -> List[WorkflowInstance]:
        by_age = sorted(instances, key=lambda w: w.created_at, reverse=True)
        return sorted(by_age, key=lambda w: priority_rank(w.priority), reverse=True)
