"""Base step interface for the startup sequence."""

from abc import ABC, abstractmethod
from typing import Optional

from ..data.models import StepResult


def _log(msg: str) -> None:
    """Print with flush so output interleaves with subprocess output."""
    print(msg, flush=True)


class BaseStep(ABC):
    """Abstract base class for startup steps.

    All steps implement this interface so the launcher can run them in a
    fixed order and apply one failure policy per step.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this step.

        Returns:
            A short, lowercase identifier (e.g., 'config', 'layout')
        """
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name for logs.

        Returns:
            A user-friendly name (e.g., 'Config Reconciler')
        """
        pass

    @abstractmethod
    def run(self) -> StepResult:
        """Perform this step.

        Returns:
            The step outcome.

        Raises:
            StepError: If the step fails.
        """
        pass

    def log(self, msg: str) -> None:
        _log(f"[{self.name}] {msg}")


class StepError(Exception):
    """Exception raised when a startup step fails."""

    def __init__(self, step_name: str, message: str, cause: Optional[Exception] = None):
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"[{step_name}] {message}")
