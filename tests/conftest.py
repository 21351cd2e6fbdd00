"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path
from tempfile import TemporaryDirectory

from gateway_boot.launcher.config import BootConfig


@pytest.fixture
def temp_data_dir():
    """Create a temporary persistent root for tests."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def boot_config(tmp_path):
    """Settings pointing every path into a temporary tree."""
    root = tmp_path / "data"
    config = BootConfig()
    config.storage.persistent_root = str(root)
    config.storage.state_dir = str(root / ".openclaw")
    config.storage.workspace_dir = str(tmp_path / "ephemeral" / "workspace")
    config.storage.sessions_dir = str(tmp_path / "ephemeral" / "sessions")
    config.cleanup.script = str(tmp_path / "cleanup-disk-space.sh")
    return config


@pytest.fixture
def existing_document():
    """A config file written by an earlier deploy plus manual edits."""
    return {
        "gateway": {
            "port": 3000,
            "bind": "loopback",
            "controlUi": {
                "enabled": True,
                "dangerouslyDisableDeviceAuth": True,
            },
            "auth": {"token": "secret-token"},
        },
        "plugins": {
            "entries": {
                "telegram": {"enabled": False, "botToken": "123:abc"},
                "matrix": {"enabled": True},
            }
        },
        "models": {
            "mode": "replace",
            "providers": {
                "ollama": {"baseUrl": "http://old-host:11434/v1"},
                "groq": {"baseUrl": "https://api.groq.com/openai/v1"},
            },
        },
        "agents": {
            "defaults": {
                "model": {"primary": "anthropic/claude"},
                "workspace": "/data/workspace",
            }
        },
        "channels": {"discord": {"guild": "42"}},
    }


@pytest.fixture
def sample_df_output():
    """Sample output from df -P -k on a nearly full volume."""
    return '''Filesystem     1024-blocks   Used Available Capacity Mounted on
/dev/sdb           1015808 975176     40632      96% /data
'''


@pytest.fixture
def sample_df_output_half():
    """Sample output from df -P -k on a half full volume."""
    return '''Filesystem     1024-blocks   Used Available Capacity Mounted on
/dev/sdb           1015808 507904    507904      50% /data
'''


@pytest.fixture
def sample_du_output():
    """Sample output from du -sk on top-level entries."""
    return '''12\t/data/.openclaw
840112\t/data/npm-cache
20480\t/data/logs
4\t/data/lost+found
102400\t/data/backups
51200\t/data/tmp
'''
