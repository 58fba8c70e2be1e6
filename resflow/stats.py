"""Aggregate statistics over the workflow population."""

from __future__ import annotations

from typing import Iterable

from .contracts import PRIORITIES, WORKFLOW_TYPES, WorkflowInstance, WorkflowStats


class StatsAggregator:
    """Derives counts and averages on demand; keeps no state of its own."""

    def compute_stats(self, instances: Iterable[WorkflowInstance]) -> WorkflowStats:
        workflows = list(instances)
        stats = WorkflowStats(
            total=len(workflows),
            by_priority={p: 0 for p in PRIORITIES},
            by_type={t: 0 for t in WORKFLOW_TYPES},
        )
        durations = []
        for wf in workflows:
            if wf.status == "active":
                stats.active += 1
                step = wf.current_step
                if step is not None and step.is_overdue:
                    stats.overdue += 1
            elif wf.status == "completed":
                stats.completed += 1
                finished = wf.completed_at
                if finished is not None:
                    durations.append((finished - wf.created_at).total_seconds() / 60)
            elif wf.status == "failed":
                stats.failed += 1
            elif wf.status == "cancelled":
                stats.cancelled += 1
            stats.by_priority[wf.priority] = stats.by_priority.get(wf.priority, 0) + 1
            stats.by_type[wf.workflow_type] = stats.by_type.get(wf.workflow_type, 0) + 1

        if durations:
            stats.avg_completion_minutes = sum(durations) / len(durations)
        return stats
