"""Resflow: reservation workflow engine."""

from .catalog import WorkflowTemplateCatalog, classify_reservation
from .contracts import (
    NotificationRequest,
    ReservationSnapshot,
    StepBlueprint,
    WorkflowFilters,
    WorkflowInstance,
    WorkflowStats,
    WorkflowStep,
)
from .engine import StepTransitionEngine
from .errors import (
    InvalidStepStateError,
    NotFoundError,
    ResflowError,
    StepExecutionError,
    StepValidationError,
    UnknownTemplateError,
    WorkflowTerminatedError,
)
from .monitor import TimeoutMonitor
from .notifications import get_gateway
from .persistence import InMemoryWorkflowStore, create_store
from .scheduling import PriorityScheduler
from .service import ReservationWorkflowService
from .stats import StatsAggregator

__version__ = "0.1.0"
__all__ = [
    "InMemoryWorkflowStore",
    "InvalidStepStateError",
    "NotFoundError",
    "NotificationRequest",
    "PriorityScheduler",
    "ReservationSnapshot",
    "ReservationWorkflowService",
    "ResflowError",
    "StatsAggregator",
    "StepBlueprint",
    "StepExecutionError",
    "StepTransitionEngine",
    "StepValidationError",
    "TimeoutMonitor",
    "UnknownTemplateError",
    "WorkflowFilters",
    "WorkflowInstance",
    "WorkflowStats",
    "WorkflowStep",
    "WorkflowTemplateCatalog",
    "WorkflowTerminatedError",
    "classify_reservation",
    "create_store",
    "get_gateway",
]
