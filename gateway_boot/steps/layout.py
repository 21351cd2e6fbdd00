"""Storage layout steps.

The persistent volume is small, so workspace and session data live on
ephemeral storage. The agents directory under the state dir is a symlink
into the ephemeral sessions dir.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from .base import BaseStep, StepError
from ..data.models import StepResult, StepStatus

UNMIGRATED_SUFFIX = ".unmigrated"


def _absolute(path: Path) -> Path:
    # abspath, not resolve: symlinks must not be followed here
    return Path(os.path.abspath(str(path)))


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def _remove_path(path: Path) -> bool:
    """Delete a file, symlink or tree. Returns False if nothing was there."""
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False


class DirectoryPreparer(BaseStep):
    """Creates the state dir and the ephemeral workspace/sessions dirs."""

    def __init__(self, directories: Sequence[Path]):
        self.directories = [Path(d) for d in directories]

    @property
    def name(self) -> str:
        return "directories"

    @property
    def display_name(self) -> str:
        return "Directory Preparer"

    def run(self) -> StepResult:
        for directory in self.directories:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StepError(self.name, f"cannot create {directory}: {e}", e)
        return StepResult(
            self.name,
            StepStatus.OK,
            f"{len(self.directories)} directories ready",
            details={"directories": [str(d) for d in self.directories]},
        )


class StorageLayoutManager(BaseStep):
    """Links the agents dir to ephemeral storage and drops legacy paths."""

    def __init__(
        self,
        link_path: Path,
        link_target: Path,
        legacy_paths: Iterable[Path] = (),
        protected_paths: Iterable[Path] = (),
    ):
        self.link_path = Path(link_path)
        self.link_target = Path(link_target)
        self.legacy_paths = [Path(p) for p in legacy_paths]
        self.protected_paths = [_absolute(Path(p)) for p in protected_paths]
        self.protected_paths.append(_absolute(self.link_target))

    @property
    def name(self) -> str:
        return "layout"

    @property
    def display_name(self) -> str:
        return "Storage Layout Manager"

    def run(self) -> StepResult:
        details = {}
        link_error = None
        try:
            details.update(self.reconcile_link())
        except OSError as e:
            link_error = e

        details["legacy_removed"] = self.remove_legacy_paths()

        if link_error is not None:
            raise StepError(self.name, f"could not link {self.link_path}: {link_error}", link_error)
        return StepResult(self.name, StepStatus.OK, f"{self.link_path} -> {self.link_target}", details=details)

    # --- Agents link ---

    def reconcile_link(self) -> dict:
        """Make link_path a symlink to link_target.

        Raises:
            OSError: If the target or the link cannot be created.
        """
        if self.link_path.is_symlink():
            # Ephemeral storage is wiped on redeploy; keep the link resolvable
            self.link_target.mkdir(parents=True, exist_ok=True)
            return {"action": "none", "points_to": os.readlink(self.link_path)}

        if self.link_path.is_dir():
            self.log("Moving sessions to ephemeral storage...")
            moved, left = self.migrate_directory(self.link_path, self.link_target)
            self.link_path.symlink_to(self.link_target, target_is_directory=True)
            return {"action": "migrated", "moved": moved, "unmigrated": left}

        self.link_target.mkdir(parents=True, exist_ok=True)
        if self.link_path.exists():
            self.log(f"Replacing stray file at {self.link_path}")
            self.link_path.unlink()
        self.link_path.symlink_to(self.link_target, target_is_directory=True)
        return {"action": "linked"}

    def migrate_directory(self, source: Path, target: Path) -> Tuple[int, List[str]]:
        """Move the children of source into target, then clear source.

        Children that collide with an existing name in target, or that fail
        to move, are kept: source is renamed aside instead of deleted.

        Returns:
            Tuple of (number moved, names left behind)
        """
        target.mkdir(parents=True, exist_ok=True)
        moved = 0
        left: List[str] = []
        for child in sorted(source.iterdir()):
            dest = target / child.name
            if dest.exists() or dest.is_symlink():
                self.log(f"WARNING: {dest} already exists, leaving {child.name} behind")
                left.append(child.name)
                continue
            try:
                shutil.move(str(child), str(dest))
                moved += 1
            except (OSError, shutil.Error) as e:
                self.log(f"WARNING: could not move {child}: {e}")
                left.append(child.name)

        if left:
            aside = source.with_name(source.name + UNMIGRATED_SUFFIX)
            _remove_path(aside)
            source.rename(aside)
            self.log(f"WARNING: {len(left)} entries not migrated, kept in {aside}")
        else:
            source.rmdir()

        self.log(f"Moved {moved} entries to {target}")
        return moved, left

    # --- Legacy cleanup ---

    def is_protected(self, path: Path) -> bool:
        """True if deleting path would touch an active directory."""
        candidate = _absolute(path)
        return any(
            _is_within(candidate, protected) or _is_within(protected, candidate)
            for protected in self.protected_paths
        )

    def remove_legacy_paths(self) -> List[str]:
        """Best-effort delete of paths left over from the old layout."""
        self.log("Cleaning up old persistent volume contents...")
        removed = []
        for path in self.legacy_paths:
            if self.is_protected(path):
                self.log(f"Skipping {path}: in use by the current layout")
                continue
            try:
                if _remove_path(path):
                    removed.append(str(path))
                    self.log(f"Removed {path}")
            except OSError as e:
                self.log(f"WARNING: could not remove {path}: {e}")
        return removed
