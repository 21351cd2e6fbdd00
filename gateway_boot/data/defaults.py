"""Fixed gateway document defaults.

These values are written into a fresh config file and forced back into an
existing one on every start.
"""

from __future__ import annotations

from typing import Any, Dict, List

GATEWAY_BIND = "lan"

TRUSTED_PROXIES: List[str] = ["10.0.0.0/8"]

# Bundled channel plugins are disabled by default in the gateway
CHANNEL_PLUGINS: List[str] = ["whatsapp", "telegram", "discord", "slack", "signal"]

# Legacy flag that must never survive a restart
LEGACY_CONTROL_UI_FIELD = "dangerouslyDisableDeviceAuth"

MODELS_MODE = "merge"

PROVIDER_NAME = "ollama"
PROVIDER_BASE_URL = "https://desktop-0qhu65q.taila384a4.ts.net/v1"

# Ollama instance reached over Tailscale
OLLAMA_PROVIDER: Dict[str, Any] = {
    "baseUrl": PROVIDER_BASE_URL,
    "apiKey": "ollama-local",
    "api": "openai-completions",
    "models": [
        {
            "id": "llama3.1",
            "name": "Llama 3.1",
            "reasoning": False,
            "input": ["text"],
            "cost": {"input": 0, "output": 0, "cacheRead": 0, "cacheWrite": 0},
            "contextWindow": 131072,
            "maxTokens": 4096,
        }
    ],
}

AUTH_PROFILES: Dict[str, Dict[str, str]] = {
    "anthropic:default": {"provider": "anthropic", "mode": "token"},
    "openai:default": {"provider": "openai", "mode": "token"},
}

AGENT_MODEL_ROUTING: Dict[str, Any] = {
    "primary": "ollama/llama3.1",
    "fallbacks": ["openai/gpt-5.2"],
}
