"""Tests for config and storage layout steps."""

import json
import os

import pytest

from gateway_boot.data.models import StepStatus
from gateway_boot.steps.base import StepError
from gateway_boot.steps.gateway_config import ConfigReconciler
from gateway_boot.steps.layout import DirectoryPreparer, StorageLayoutManager


class TestConfigReconciler:
    def test_name_property(self, temp_data_dir):
        step = ConfigReconciler(temp_data_dir / "openclaw.json", 8080, "/ws")
        assert step.name == "config"
        assert step.display_name == "Config Reconciler"

    def test_creates_missing_file(self, temp_data_dir):
        path = temp_data_dir / "openclaw.json"
        result = ConfigReconciler(path, 10000, "/tmp/ws").run()

        assert result.status == StepStatus.OK
        assert result.details["created"] is True
        doc = json.loads(path.read_text())
        assert doc["gateway"]["port"] == 10000
        assert doc["gateway"]["bind"] == "lan"
        assert all(doc["plugins"]["entries"][n]["enabled"] for n in ("whatsapp", "telegram", "discord", "slack", "signal"))
        assert doc["agents"]["defaults"]["model"]["primary"] == "ollama/llama3.1"
        assert doc["agents"]["defaults"]["workspace"] == "/tmp/ws"

    def test_updates_existing_file(self, temp_data_dir, existing_document):
        path = temp_data_dir / "openclaw.json"
        path.write_text(json.dumps(existing_document))

        result = ConfigReconciler(path, 9000, "/tmp/ws").run()

        assert result.details["created"] is False
        doc = json.loads(path.read_text())
        assert doc["gateway"]["port"] == 9000
        assert doc["channels"] == existing_document["channels"]
        assert doc["gateway"]["auth"] == existing_document["gateway"]["auth"]

    def test_rerun_is_idempotent(self, temp_data_dir, existing_document):
        path = temp_data_dir / "openclaw.json"
        path.write_text(json.dumps(existing_document))
        step = ConfigReconciler(path, 8080, "/tmp/ws")

        step.run()
        first = path.read_bytes()
        step.run()

        assert path.read_bytes() == first

    def test_first_run_then_rerun(self, temp_data_dir):
        path = temp_data_dir / "openclaw.json"
        step = ConfigReconciler(path, 8080, "/tmp/ws")

        step.run()
        first = json.loads(path.read_text())
        step.run()

        assert json.loads(path.read_text()) == first

    def test_invalid_json_raises_step_error(self, temp_data_dir):
        path = temp_data_dir / "openclaw.json"
        path.write_text("{broken")

        with pytest.raises(StepError) as exc_info:
            ConfigReconciler(path, 8080, "/tmp/ws").run()

        assert exc_info.value.step_name == "config"
        assert path.read_text() == "{broken"

    def test_missing_directory_raises_step_error(self, temp_data_dir):
        with pytest.raises(StepError):
            ConfigReconciler(temp_data_dir / "nope" / "openclaw.json", 8080, "/tmp/ws").run()


class TestDirectoryPreparer:
    def test_creates_directories(self, temp_data_dir):
        dirs = [temp_data_dir / "state", temp_data_dir / "eph" / "ws", temp_data_dir / "eph" / "sessions"]
        result = DirectoryPreparer(dirs).run()

        assert result.status == StepStatus.OK
        assert all(d.is_dir() for d in dirs)

    def test_existing_directories_ok(self, temp_data_dir):
        (temp_data_dir / "state").mkdir()
        DirectoryPreparer([temp_data_dir / "state"]).run()
        assert (temp_data_dir / "state").is_dir()

    def test_failure_raises_step_error(self, temp_data_dir):
        blocker = temp_data_dir / "file"
        blocker.write_text("not a dir")

        with pytest.raises(StepError) as exc_info:
            DirectoryPreparer([blocker / "state"]).run()
        assert exc_info.value.step_name == "directories"


@pytest.fixture
def layout(temp_data_dir):
    """State dir on the persistent root plus an ephemeral sessions dir."""
    root = temp_data_dir / "data"
    state = root / ".openclaw"
    sessions = temp_data_dir / "ephemeral" / "sessions"
    state.mkdir(parents=True)
    sessions.mkdir(parents=True)
    return {
        "root": root,
        "state": state,
        "sessions": sessions,
        "link_path": state / "agents",
        "link_target": sessions / "agents",
    }


def make_manager(layout, legacy_paths=(), protected_paths=()):
    return StorageLayoutManager(
        link_path=layout["link_path"],
        link_target=layout["link_target"],
        legacy_paths=legacy_paths,
        protected_paths=protected_paths,
    )


class TestStorageLayoutManager:
    def test_name_property(self, layout):
        assert make_manager(layout).name == "layout"

    def test_creates_link_when_absent(self, layout):
        result = make_manager(layout).run()

        assert result.details["action"] == "linked"
        assert layout["link_path"].is_symlink()
        assert layout["link_target"].is_dir()
        assert os.readlink(layout["link_path"]) == str(layout["link_target"])

    def test_migrates_real_directory(self, layout):
        agents = layout["link_path"]
        (agents / "main" / "sessions").mkdir(parents=True)
        (agents / "main" / "sessions" / "s1.jsonl").write_text("session-1")
        (agents / "index.json").write_text("{}")

        result = make_manager(layout).run()

        assert result.details["action"] == "migrated"
        assert result.details["moved"] == 2
        assert result.details["unmigrated"] == []
        assert agents.is_symlink()
        assert (layout["link_target"] / "main" / "sessions" / "s1.jsonl").read_text() == "session-1"
        assert (layout["link_target"] / "index.json").read_text() == "{}"
        # Reachable through the link as well
        assert (agents / "main" / "sessions" / "s1.jsonl").read_text() == "session-1"

    def test_migration_collision_keeps_leftovers(self, layout):
        agents = layout["link_path"]
        agents.mkdir()
        (agents / "a.json").write_text("old-a")
        (agents / "b.json").write_text("old-b")
        layout["link_target"].mkdir()
        (layout["link_target"] / "a.json").write_text("ephemeral-a")

        result = make_manager(layout).run()

        assert result.details["moved"] == 1
        assert result.details["unmigrated"] == ["a.json"]
        assert agents.is_symlink()
        assert (layout["link_target"] / "a.json").read_text() == "ephemeral-a"
        assert (layout["link_target"] / "b.json").read_text() == "old-b"
        assert (layout["state"] / "agents.unmigrated" / "a.json").read_text() == "old-a"

    def test_existing_link_untouched(self, layout):
        elsewhere = layout["sessions"] / "custom"
        elsewhere.mkdir()
        layout["link_path"].symlink_to(elsewhere)

        result = make_manager(layout).run()

        assert result.details["action"] == "none"
        assert os.readlink(layout["link_path"]) == str(elsewhere)

    def test_existing_link_recreates_target(self, layout):
        layout["link_path"].symlink_to(layout["link_target"])
        assert not layout["link_target"].exists()

        make_manager(layout).run()

        assert layout["link_target"].is_dir()
        assert layout["link_path"].resolve() == layout["link_target"].resolve()

    def test_replaces_stray_file(self, layout):
        layout["link_path"].write_text("oops")

        result = make_manager(layout).run()

        assert result.details["action"] == "linked"
        assert layout["link_path"].is_symlink()

    def test_link_failure_raises_after_legacy_cleanup(self, layout):
        legacy = layout["root"] / "workspace"
        legacy.mkdir()
        # Parent of the link target is a file
        blocked = layout["root"] / "blocked"
        blocked.write_text("")
        manager = StorageLayoutManager(
            link_path=layout["link_path"],
            link_target=blocked / "agents",
            legacy_paths=[legacy],
        )

        with pytest.raises(StepError):
            manager.run()
        assert not legacy.exists()

    def test_removes_legacy_paths(self, layout):
        workspace = layout["root"] / "workspace"
        (workspace / "project").mkdir(parents=True)
        browser = layout["state"] / "browser"
        browser.mkdir()
        memory = layout["state"] / "memory"
        memory.write_text("sqlite")

        result = make_manager(layout, legacy_paths=[workspace, browser, memory, layout["state"] / "absent"]).run()

        assert not workspace.exists()
        assert not browser.exists()
        assert not memory.exists()
        assert sorted(result.details["legacy_removed"]) == sorted([str(workspace), str(browser), str(memory)])

    def test_legacy_symlink_not_followed(self, layout, temp_data_dir):
        keep = temp_data_dir / "keep"
        keep.mkdir()
        (keep / "important").write_text("data")
        browser = layout["state"] / "browser"
        browser.symlink_to(keep)

        make_manager(layout, legacy_paths=[browser]).run()

        assert not browser.is_symlink()
        assert (keep / "important").read_text() == "data"

    def test_protected_legacy_path_skipped(self, layout):
        workspace = layout["root"] / "workspace"
        workspace.mkdir()
        (workspace / "notes.md").write_text("keep me")

        result = make_manager(layout, legacy_paths=[workspace], protected_paths=[workspace]).run()

        assert (workspace / "notes.md").exists()
        assert result.details["legacy_removed"] == []

    def test_legacy_path_containing_link_target_skipped(self, layout):
        manager = make_manager(layout, legacy_paths=[layout["sessions"]])
        manager.run()
        assert layout["sessions"].is_dir()

    def test_rerun_is_stable(self, layout):
        manager = make_manager(layout)
        manager.run()
        result = manager.run()

        assert result.details["action"] == "none"
        assert layout["link_path"].is_symlink()
