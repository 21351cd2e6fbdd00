#!/usr/bin/env python3
"""
Gateway bootstrap - Main entry point.

Prepares storage and config for the gateway, frees disk space, checks the
model provider, then execs the gateway. Takes no arguments; everything is
driven by environment variables.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .config import BootConfig
from .process import ExecFn, build_launch_plan, launch_gateway
from ..data.models import FailurePolicy, StepResult, StepStatus
from ..steps.base import BaseStep, StepError
from ..steps.gateway_config import ConfigReconciler
from ..steps.layout import DirectoryPreparer, StorageLayoutManager
from ..steps.readiness import ReadinessCheck
from ..steps.storage import SpaceReclaimer

# What happens when each step raises
STEP_POLICIES: Dict[str, FailurePolicy] = {
    "directories": FailurePolicy.FATAL,
    "config": FailurePolicy.RECOVERED,
    "layout": FailurePolicy.IGNORED,
    "reclaim": FailurePolicy.IGNORED,
    "readiness": FailurePolicy.IGNORED,
}

# Source of truth used when a RECOVERED step fails
STEP_FALLBACKS: Dict[str, str] = {
    "config": "environment",
}


def _log(msg: str) -> None:
    print(msg, flush=True)


class StartupAborted(Exception):
    """Raised when a fatal step fails."""

    def __init__(self, result: StepResult):
        self.result = result
        super().__init__(f"startup aborted at step '{result.step}': {result.message}")


def build_steps(config: BootConfig) -> List[BaseStep]:
    """Create the startup steps in execution order."""
    storage = config.storage
    steps: List[BaseStep] = [
        DirectoryPreparer([
            Path(storage.state_dir),
            Path(storage.workspace_dir),
            Path(storage.sessions_dir),
        ]),
        ConfigReconciler(config.config_file, config.gateway.port, storage.workspace_dir),
        StorageLayoutManager(
            link_path=config.link_path,
            link_target=config.link_target,
            legacy_paths=storage.resolve_legacy_paths(),
            protected_paths=[
                Path(storage.workspace_dir),
                Path(storage.sessions_dir),
                config.config_file,
                config.link_path,
            ],
        ),
        SpaceReclaimer(
            persistent_root=Path(storage.persistent_root),
            script=config.cleanup.script,
            aggressive_flag=config.cleanup.aggressive_flag,
            aggressive_threshold=config.cleanup.aggressive_threshold,
            diagnostic_threshold=config.cleanup.diagnostic_threshold,
            top_entries=config.cleanup.top_entries,
            timeout=config.cleanup.timeout,
        ),
    ]
    if config.readiness.enabled:
        steps.append(
            ReadinessCheck(
                url=config.readiness.url,
                timeout=config.readiness.timeout,
                verify_tls=config.readiness.verify_tls,
                ca_bundle=config.readiness.ca_bundle,
            )
        )
    return steps


def _run_step(step: BaseStep) -> StepResult:
    """Run one step, turning unexpected exceptions into StepError."""
    try:
        return step.run()
    except StepError:
        raise
    except Exception as e:
        raise StepError(step.name, f"unexpected error: {e}", e) from e


def run_steps(steps: List[BaseStep], policies: Optional[Mapping[str, FailurePolicy]] = None) -> List[StepResult]:
    """Run steps in order, applying the failure policy of each.

    Raises:
        StartupAborted: If a step with a FATAL policy raises.
    """
    policies = STEP_POLICIES if policies is None else policies
    results = []
    for step in steps:
        policy = policies.get(step.name, FailurePolicy.IGNORED)
        try:
            result = _run_step(step)
        except StepError as e:
            if policy == FailurePolicy.FATAL:
                result = StepResult(step.name, StepStatus.FAILED, str(e))
                _log(f"[boot] FATAL: {e}")
                raise StartupAborted(result) from e
            if policy == FailurePolicy.RECOVERED:
                fallback = STEP_FALLBACKS.get(step.name)
                result = StepResult(step.name, StepStatus.RECOVERED, str(e), fallback=fallback)
                _log(f"[boot] Warning: {e}; relying on {fallback or 'defaults'}")
            else:
                result = StepResult(step.name, StepStatus.FAILED, str(e))
                _log(f"[boot] Warning: {e}; continuing")
        results.append(result)
    return results


def run_startup(
    config: Optional[BootConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
    exec_fn: ExecFn = os.execvpe,
) -> List[StepResult]:
    """Run every step, then exec the gateway.

    Only returns when exec_fn returns, which the real os.execvpe never does.
    """
    env = os.environ if environ is None else environ
    if config is None:
        config = BootConfig.load(env)

    results = run_steps(build_steps(config))
    summary = ", ".join(f"{r.step}={r.status.value}" for r in results)
    _log(f"[boot] Steps complete: {summary}")

    launch_gateway(build_launch_plan(config, env), exec_fn=exec_fn)
    return results


def main() -> int:
    """Entry point for the gateway-boot command."""
    try:
        run_startup()
    except StartupAborted as e:
        _log(f"[boot] {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
