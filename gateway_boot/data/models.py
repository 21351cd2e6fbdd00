"""Data models for the gateway bootstrap.

This module defines the small set of structures passed between startup
steps, following these principles:

1. EXPLICIT OUTCOMES
   - Every step reports a StepResult instead of relying on exit codes
   - Step failures are classified by a FailurePolicy, never ignored silently

2. EXPLICIT UNITS
   - Disk usage: percent (float, 0-100), sizes as reported by df (kilobytes)

3. NORMALIZED STATUS VALUES
   - Step: OK, RECOVERED, FAILED, SKIPPED
   - Disk: HEALTHY, WARNING, CRITICAL
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# Enumerations
# =============================================================================


class FailurePolicy(str, Enum):
    """What the runner does when a step raises."""

    FATAL = "fatal"  # Abort startup
    RECOVERED = "recovered"  # Log and continue on a fallback source
    IGNORED = "ignored"  # Log and continue


class StepStatus(str, Enum):
    """Outcome of a single startup step."""

    OK = "ok"
    RECOVERED = "recovered"
    FAILED = "failed"
    SKIPPED = "skipped"


class CleanupMode(str, Enum):
    """Aggressiveness tier passed to the cleanup script."""

    DEFAULT = "default"
    AGGRESSIVE = "aggressive"


class DiskHealthStatus(str, Enum):
    """Health of the persistent volume."""

    HEALTHY = "HEALTHY"  # At or below the diagnostic threshold
    WARNING = "WARNING"  # Above the diagnostic threshold (>90%)
    CRITICAL = "CRITICAL"  # Above the aggressive threshold (>95%)


# =============================================================================
# Snapshots and results
# =============================================================================


@dataclass
class DiskUsage:
    """A single df reading for a mount point."""

    mount_point: str
    filesystem: str = ""
    size_kb: int = 0
    used_kb: int = 0
    available_kb: int = 0
    percent_used: float = 0.0

    def status(self, warning_threshold: float = 90, critical_threshold: float = 95) -> DiskHealthStatus:
        if self.percent_used > critical_threshold:
            return DiskHealthStatus.CRITICAL
        if self.percent_used > warning_threshold:
            return DiskHealthStatus.WARNING
        return DiskHealthStatus.HEALTHY

    def describe(self) -> str:
        return (
            f"{self.mount_point} ({self.filesystem or 'unknown'}): "
            f"{self.used_kb // 1024}M used of {self.size_kb // 1024}M, "
            f"{self.available_kb // 1024}M free, {self.percent_used:.0f}%"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mount_point": self.mount_point,
            "filesystem": self.filesystem,
            "size_kb": self.size_kb,
            "used_kb": self.used_kb,
            "available_kb": self.available_kb,
            "percent_used": self.percent_used,
            "status": self.status().value,
        }


@dataclass
class SpaceUser:
    """A top-level entry of the persistent root and its size."""

    path: str
    size_kb: int

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "size_kb": self.size_kb}


@dataclass
class StepResult:
    """Outcome of one startup step."""

    step: str
    status: StepStatus
    message: str = ""
    fallback: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "step": self.step,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
        }
        if self.fallback:
            result["fallback"] = self.fallback
        return result


@dataclass
class LaunchPlan:
    """Resolved gateway invocation."""

    argv: List[str]
    env: Dict[str, str]

    @property
    def executable(self) -> str:
        return self.argv[0]
