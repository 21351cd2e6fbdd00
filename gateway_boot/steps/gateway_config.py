"""Gateway config reconciliation step.

Creates the JSON config on first run, otherwise forces the managed fields
into the existing document and writes it back.
"""

from __future__ import annotations

from pathlib import Path

from .base import BaseStep, StepError
from ..data.document import build_default_document, reconcile_document, summarize
from ..data.models import StepResult, StepStatus
from ..data.persistence import ConfigStore, DocumentError


class ConfigReconciler(BaseStep):
    """Reconciles the persisted gateway config with the desired settings."""

    def __init__(self, config_file: Path, port: int, workspace_dir: str):
        self.store = ConfigStore(config_file)
        self.port = port
        self.workspace_dir = workspace_dir

    @property
    def name(self) -> str:
        return "config"

    @property
    def display_name(self) -> str:
        return "Config Reconciler"

    def run(self) -> StepResult:
        path = self.store.path
        try:
            if not self.store.exists():
                self.log("Creating initial config...")
                document = build_default_document(self.port, self.workspace_dir)
                self.store.save(document)
                self.log(f"Config created at {path}")
                return StepResult(self.name, StepStatus.OK, f"created {path}", details={"created": True})

            self.log("Updating existing config with gateway settings...")
            document = reconcile_document(self.store.load(), self.port)
            self.store.save(document)
        except DocumentError as e:
            raise StepError(self.name, f"could not update config: {e}", e)
        except Exception as e:
            raise StepError(self.name, f"could not update config {path}: {e}", e)

        self.log(f"Config updated with {summarize(document)}")
        return StepResult(self.name, StepStatus.OK, f"updated {path}", details={"created": False})
