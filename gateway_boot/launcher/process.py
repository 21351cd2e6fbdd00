"""Gateway process launch.

The bootstrap ends by replacing itself with the gateway, so the gateway
becomes the container's main process and receives its signals directly.
"""

from __future__ import annotations

import os
from typing import Callable, List, Mapping, Optional

from .config import BootConfig
from ..data import defaults
from ..data.models import LaunchPlan

PORT_ENV = "OPENCLAW_GATEWAY_PORT"
BIND_ENV = "OPENCLAW_GATEWAY_BIND"

ExecFn = Callable[[str, List[str], Mapping[str, str]], None]


def _log(msg: str) -> None:
    print(msg, flush=True)


def build_launch_plan(config: BootConfig, environ: Optional[Mapping[str, str]] = None) -> LaunchPlan:
    """Resolve the gateway command line and environment.

    The port and bind env vars take precedence over the config file inside
    the gateway, so they still apply when config reconciliation failed.
    """
    env = dict(os.environ if environ is None else environ)
    gateway = config.gateway
    env[PORT_ENV] = str(gateway.port)
    env[BIND_ENV] = defaults.GATEWAY_BIND

    argv = [
        gateway.node_binary,
        f"--max-old-space-size={gateway.max_old_space_mb}",
        gateway.entrypoint,
        "gateway",
        "--port",
        str(gateway.port),
        "--bind",
        defaults.GATEWAY_BIND,
        "--allow-unconfigured",
    ]
    return LaunchPlan(argv=argv, env=env)


def launch_gateway(plan: LaunchPlan, exec_fn: ExecFn = os.execvpe) -> None:
    """Log the invocation and exec it. Does not return on success."""
    _log("[launch] Starting gateway:")
    _log(f"[launch]   PORT={plan.env.get('PORT', '')}")
    _log(f"[launch]   {PORT_ENV}={plan.env[PORT_ENV]}")
    _log(f"[launch]   {BIND_ENV}={plan.env[BIND_ENV]}")
    _log(f"[launch]   Command: {' '.join(plan.argv)}")
    exec_fn(plan.executable, plan.argv, plan.env)
