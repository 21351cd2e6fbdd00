"""Disk space reclamation step.

Measures the persistent volume with `df`, picks a cleanup tier and runs the
external cleanup script. If the volume is still nearly full afterwards, the
largest top-level entries are reported.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from .base import BaseStep, StepError
from ..data.models import CleanupMode, DiskUsage, SpaceUser, StepResult, StepStatus


def select_cleanup_mode(percent_used: float, aggressive_threshold: float = 95) -> CleanupMode:
    """Aggressive cleanup only when usage is strictly above the threshold."""
    if percent_used > aggressive_threshold:
        return CleanupMode.AGGRESSIVE
    return CleanupMode.DEFAULT


class SpaceReclaimer(BaseStep):
    """Runs the cleanup script at a tier chosen from measured usage.

    Uses `df -P -k` for usage and `du -sk` for the diagnostics listing.
    """

    def __init__(
        self,
        persistent_root: Path,
        script: str,
        aggressive_flag: str = "--aggressive",
        aggressive_threshold: float = 95,
        diagnostic_threshold: float = 90,
        top_entries: int = 5,
        timeout: Optional[int] = None,
    ):
        self.persistent_root = Path(persistent_root)
        self.script = script
        self.aggressive_flag = aggressive_flag
        self.aggressive_threshold = aggressive_threshold
        self.diagnostic_threshold = diagnostic_threshold
        self.top_entries = top_entries
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "reclaim"

    @property
    def display_name(self) -> str:
        return "Space Reclaimer"

    def run(self) -> StepResult:
        self.log("Checking disk space...")
        before = self.measure()
        percent_before = before.percent_used if before else 0.0
        if before:
            self.log(before.describe())

        mode = select_cleanup_mode(percent_before, self.aggressive_threshold)
        if mode == CleanupMode.AGGRESSIVE:
            self.log(f"WARNING: Disk critically full ({percent_before:.0f}%), using aggressive cleanup...")

        details: Dict[str, Any] = {
            "mode": mode.value,
            "before": before.to_dict() if before else None,
        }

        cleanup_error: Optional[StepError] = None
        try:
            details["cleanup_returncode"] = self.run_cleanup(mode)
        except StepError as e:
            cleanup_error = e
            self.log(f"WARNING: Disk cleanup failed, continuing anyway: {e}")

        after = self.measure()
        details["after"] = after.to_dict() if after else None
        if after:
            self.log(f"Disk space after cleanup: {after.describe()}")
            if after.percent_used > self.diagnostic_threshold:
                self.log(
                    f"WARNING: Disk still above {self.diagnostic_threshold}% after cleanup. Top space users:"
                )
                users = self.top_space_users()
                for user in users:
                    self.log(f"  {user.size_kb // 1024}M\t{user.path}")
                details["top_space_users"] = [u.to_dict() for u in users]

        if cleanup_error is not None:
            return StepResult(self.name, StepStatus.FAILED, str(cleanup_error), details=details)
        return StepResult(self.name, StepStatus.OK, f"cleanup ran in {mode.value} mode", details=details)

    # --- Cleanup script ---

    def cleanup_command(self, mode: CleanupMode) -> List[str]:
        cmd = ["bash", self.script]
        if mode == CleanupMode.AGGRESSIVE:
            cmd.append(self.aggressive_flag)
        return cmd

    def run_cleanup(self, mode: CleanupMode) -> int:
        """Run the cleanup script, answering "n" to any prompt.

        Returns:
            The script's exit status.

        Raises:
            StepError: If the script cannot be started or times out.
        """
        if not Path(self.script).is_file():
            raise StepError(self.name, f"cleanup script not found: {self.script}")

        self.log("Running disk cleanup...")
        try:
            result = subprocess.run(
                self.cleanup_command(mode),
                input="n\n",
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise StepError(self.name, f"cleanup timed out after {self.timeout}s", e)
        except OSError as e:
            raise StepError(self.name, f"cannot run cleanup: {e}", e)

        if result.returncode != 0:
            self.log(f"WARNING: cleanup exited with status {result.returncode}")
        return result.returncode

    # --- Measurements ---

    def measure(self) -> Optional[DiskUsage]:
        """Read usage of the persistent root. None if df fails."""
        try:
            result = subprocess.run(
                ["df", "-P", "-k", str(self.persistent_root)],
                capture_output=True,
                text=True,
                timeout=30,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            self.log(f"WARNING: could not run df: {e}")
            return None
        if result.returncode != 0:
            self.log(f"WARNING: df failed for {self.persistent_root}: {result.stderr.strip()}")
            return None
        return self._parse_df_output(result.stdout)

    def _parse_df_output(self, df_output: str) -> Optional[DiskUsage]:
        """Parse POSIX df output into a DiskUsage."""
        lines = df_output.strip().split("\n")
        if len(lines) < 2:
            return None

        # Handle wrapped lines (when filesystem name is long)
        data_line = lines[-1]
        if len(lines) > 2 and data_line[:1].isspace():
            prev = lines[-2].strip()
            if prev and not prev.startswith("Filesystem"):
                data_line = prev + " " + data_line

        parts = data_line.split()
        if len(parts) < 5:
            return None
        try:
            return DiskUsage(
                mount_point=parts[5] if len(parts) > 5 else str(self.persistent_root),
                filesystem=parts[0],
                size_kb=int(parts[1]),
                used_kb=int(parts[2]),
                available_kb=int(parts[3]),
                percent_used=float(parts[4].rstrip("%")),
            )
        except ValueError:
            return None

    def top_space_users(self) -> List[SpaceUser]:
        """Largest top-level entries of the persistent root, biggest first."""
        try:
            entries = sorted(str(p) for p in self.persistent_root.iterdir())
        except OSError as e:
            self.log(f"WARNING: cannot list {self.persistent_root}: {e}")
            return []
        if not entries:
            return []

        try:
            result = subprocess.run(
                ["du", "-sk", *entries],
                capture_output=True,
                text=True,
                timeout=60,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            self.log(f"WARNING: could not run du: {e}")
            return []

        # du exits non-zero on unreadable entries but still reports the rest
        users = self._parse_du_output(result.stdout)
        users.sort(key=lambda u: u.size_kb, reverse=True)
        return users[: self.top_entries]

    def _parse_du_output(self, du_output: str) -> List[SpaceUser]:
        users = []
        for line in du_output.splitlines():
            size, _, path = line.partition("\t")
            if not path:
                continue
            try:
                users.append(SpaceUser(path=path, size_kb=int(size)))
            except ValueError:
                continue
        return users
