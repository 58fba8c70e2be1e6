"""Workflow instance storage."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ..catalog import WorkflowTemplateCatalog
from ..config import ResflowConfig, load_config
from .inmemory import InMemoryWorkflowStore
from .repository import WorkflowStarter, WorkflowStore


def create_store(
    config: Optional[ResflowConfig] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> WorkflowStore:
    """Build a fresh store wired to a catalog configured from ``config``.

    Every call returns a new store; callers own its lifetime.
    """

    config = config or load_config()
    catalog = WorkflowTemplateCatalog(config.templates)
    return InMemoryWorkflowStore(catalog=catalog, clock=clock)


__all__ = [
    "InMemoryWorkflowStore",
    "WorkflowStarter",
    "WorkflowStore",
    "create_store",
]
