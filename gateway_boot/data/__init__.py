"""Data layer - models, defaults, document reconciliation and persistence."""

from .document import build_default_document, reconcile_document
from .models import (
    CleanupMode,
    DiskHealthStatus,
    DiskUsage,
    FailurePolicy,
    LaunchPlan,
    SpaceUser,
    StepResult,
    StepStatus,
)
from .persistence import ConfigStore, DocumentError

__all__ = [
    "build_default_document",
    "reconcile_document",
    "CleanupMode",
    "DiskHealthStatus",
    "DiskUsage",
    "FailurePolicy",
    "LaunchPlan",
    "SpaceUser",
    "StepResult",
    "StepStatus",
    "ConfigStore",
    "DocumentError",
]
