"""Pure functions building and reconciling the gateway config document.

Nothing here touches the filesystem. Inputs are never mutated; every
function returns a new document.
"""

from __future__ import annotations

import copy
from typing import Any, Dict

from . import defaults


def build_default_document(port: int, workspace_dir: str) -> Dict[str, Any]:
    """Complete document written on first run."""
    return {
        "gateway": {
            "port": port,
            "bind": defaults.GATEWAY_BIND,
            "trustedProxies": list(defaults.TRUSTED_PROXIES),
        },
        "plugins": {
            "entries": {name: {"enabled": True} for name in defaults.CHANNEL_PLUGINS},
        },
        "models": {
            "mode": defaults.MODELS_MODE,
            "providers": {
                defaults.PROVIDER_NAME: copy.deepcopy(defaults.OLLAMA_PROVIDER),
            },
        },
        "auth": {
            "profiles": copy.deepcopy(defaults.AUTH_PROFILES),
        },
        "agents": {
            "defaults": {
                "model": copy.deepcopy(defaults.AGENT_MODEL_ROUTING),
                "workspace": workspace_dir,
            },
        },
    }


def _mapping(parent: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Return parent[key], replacing a missing or non-object value with {}."""
    value = parent.get(key)
    if not isinstance(value, dict):
        value = {}
        parent[key] = value
    return value


def reconcile_document(document: Dict[str, Any], port: int) -> Dict[str, Any]:
    """Force the managed fields of an existing document.

    Overwrites gateway port/bind/trustedProxies, drops the legacy
    controlUi flag, enables the channel plugins, and replaces the ollama
    provider and the agent model routing. Everything else is kept.
    """
    result = copy.deepcopy(document)

    gateway = _mapping(result, "gateway")
    gateway["port"] = port
    gateway["bind"] = defaults.GATEWAY_BIND
    gateway["trustedProxies"] = list(defaults.TRUSTED_PROXIES)
    control_ui = gateway.get("controlUi")
    if isinstance(control_ui, dict):
        control_ui.pop(defaults.LEGACY_CONTROL_UI_FIELD, None)

    entries = _mapping(_mapping(result, "plugins"), "entries")
    for name in defaults.CHANNEL_PLUGINS:
        _mapping(entries, name)["enabled"] = True

    models = _mapping(result, "models")
    models["mode"] = defaults.MODELS_MODE
    _mapping(models, "providers")[defaults.PROVIDER_NAME] = copy.deepcopy(defaults.OLLAMA_PROVIDER)

    agent_defaults = _mapping(_mapping(result, "agents"), "defaults")
    agent_defaults["model"] = copy.deepcopy(defaults.AGENT_MODEL_ROUTING)

    return result


def summarize(document: Dict[str, Any]) -> str:
    """One-line description of the managed fields, for logs."""
    gateway = document.get("gateway") or {}
    entries = (document.get("plugins") or {}).get("entries") or {}
    enabled = sorted(name for name, entry in entries.items() if isinstance(entry, dict) and entry.get("enabled"))
    routing = ((document.get("agents") or {}).get("defaults") or {}).get("model") or {}
    return (
        f"port={gateway.get('port')}, bind={gateway.get('bind')}, "
        f"plugins enabled={','.join(enabled) or 'none'}, primary={routing.get('primary')}"
    )
