from __future__ import annotations

import os
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_APPROVAL_TIMEOUT_MINUTES,
    DEFAULT_ESCALATION_ROLE,
    DEFAULT_MANUAL_TIMEOUT_MINUTES,
    DEFAULT_MONITOR_INTERVAL_SECONDS,
    ROOMING_LIST_TIMEOUT_MINUTES,
    URGENT_APPROVAL_TIMEOUT_MINUTES,
)


class RedisConfig(BaseModel):
    """Configuration for the Redis notification gateway."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    queue: str = "resflow:notifications"


class NotificationConfig(BaseModel):
    """Notification gateway settings."""

    backend: Literal["inmemory", "redis"] = "inmemory"
    redis: RedisConfig = RedisConfig()
    max_attempts: int = 3


class TemplateConfig(BaseModel):
    """Template catalog policy knobs."""

    fallback_to_standard: bool = False
    approval_timeout_minutes: int = DEFAULT_APPROVAL_TIMEOUT_MINUTES
    urgent_approval_timeout_minutes: int = URGENT_APPROVAL_TIMEOUT_MINUTES
    manual_timeout_minutes: int = DEFAULT_MANUAL_TIMEOUT_MINUTES
    rooming_list_timeout_minutes: int = ROOMING_LIST_TIMEOUT_MINUTES


class MonitorConfig(BaseModel):
    """Timeout monitor settings."""

    interval_seconds: float = DEFAULT_MONITOR_INTERVAL_SECONDS
    default_escalation_role: str = DEFAULT_ESCALATION_ROLE
    escalation_contacts: Dict[str, str] = Field(
        default_factory=lambda: {
            "front_office_manager": "general_manager",
            "front_office": "front_office_manager",
            "finance": "finance_director",
            "revenue_manager": "general_manager",
            "housekeeping": "executive_housekeeper",
            "reservations": "reservations_manager",
        }
    )


class ResflowConfig(BaseModel):
    """Top-level configuration model."""

    notifications: NotificationConfig = NotificationConfig()
    templates: TemplateConfig = TemplateConfig()
    monitor: MonitorConfig = MonitorConfig()
    roles: Dict[str, List[str]] = Field(default_factory=dict)


def load_config(path: Optional[str] = None) -> ResflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to RESFLOW_CONFIG env
            variable or 'resflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("RESFLOW_CONFIG", "resflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = ResflowConfig(**data)
    else:
        config = ResflowConfig()

    env_backend = os.getenv("RESFLOW_NOTIFICATIONS")
    if env_backend:
        config.notifications.backend = env_backend.lower()
    return config
