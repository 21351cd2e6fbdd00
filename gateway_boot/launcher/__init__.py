"""Launcher - settings, step runner and gateway process launch."""

from .config import BootConfig
from .main import STEP_POLICIES, StartupAborted, build_steps, main, run_startup, run_steps
from .process import build_launch_plan, launch_gateway

__all__ = [
    "BootConfig",
    "STEP_POLICIES",
    "StartupAborted",
    "build_steps",
    "main",
    "run_startup",
    "run_steps",
    "build_launch_plan",
    "launch_gateway",
]
