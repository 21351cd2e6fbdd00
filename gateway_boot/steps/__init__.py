"""Startup steps - directories, config, layout, disk cleanup, readiness."""

from .base import BaseStep, StepError
from .gateway_config import ConfigReconciler
from .layout import DirectoryPreparer, StorageLayoutManager
from .readiness import ReadinessCheck
from .storage import SpaceReclaimer, select_cleanup_mode

__all__ = [
    "BaseStep",
    "StepError",
    "ConfigReconciler",
    "DirectoryPreparer",
    "StorageLayoutManager",
    "ReadinessCheck",
    "SpaceReclaimer",
    "select_cleanup_mode",
]
