"""
Git LFS client for tracked asset discovery.

Lists the LFS-tracked map assets of a working copy with their object ids,
and reports whether tracking is set up and the working copy is clean with
respect to LFS pointers.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from django.conf import settings

from builtdata.exceptions import TrackingError
from builtdata.locator import TrackedAsset

logger = logging.getLogger(__name__)

DEFAULT_ASSET_EXTENSIONS = [".umap"]


@dataclass(frozen=True)
class LfsFile:
    """A file listed by `git lfs ls-files --long`."""

    oid: str
    path: str
    downloaded: bool

    @classmethod
    def from_ls_files_line(cls, line: str) -> "LfsFile | None":
        """Parse a `<oid> <*|-> <path>` line."""
        parts = line.rstrip("\n").split(" ", 2)
        if len(parts) != 3 or parts[1] not in ("*", "-") or not parts[0]:
            return None
        return cls(oid=parts[0], path=parts[2], downloaded=parts[1] == "*")


def parse_ls_files_output(output: str) -> list[LfsFile]:
    files = []
    for line in output.splitlines():
        if not line.strip():
            continue
        lfs_file = LfsFile.from_ls_files_line(line)
        if lfs_file is None:
            logger.debug(f"Ignoring unexpected ls-files line: {line!r}")
            continue
        files.append(lfs_file)
    return files


def parse_status_porcelain_z(output: str) -> set[str]:
    """
    Parse `git status --porcelain -z` into the set of changed paths.

    Untracked files are left out. Renames contribute both paths.
    """
    paths: set[str] = set()
    entries = output.split("\0")
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if len(entry) < 4:
            continue
        status_code, path = entry[:2], entry[3:]
        if status_code == "??" or status_code == "!!":
            continue
        paths.add(path)
        if status_code[0] in ("R", "C") and i < len(entries):
            paths.add(entries[i])
            i += 1
    return paths


class GitLfsClient:
    """
    Tracked asset source backed by the git and git-lfs executables.
    """

    def __init__(
        self,
        project_dir: str | Path,
        git_executable: str | None = None,
        asset_extensions: list[str] | None = None,
    ):
        self.project_dir = Path(project_dir)
        self.git = git_executable or getattr(settings, "BUILTDATA_GIT_EXECUTABLE", "git")
        extensions = asset_extensions or getattr(
            settings, "BUILTDATA_ASSET_EXTENSIONS", DEFAULT_ASSET_EXTENSIONS
        )
        self.asset_extensions = {ext.lower() for ext in extensions}

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        command = [self.git, "-C", self.project_dir.as_posix(), *args]
        try:
            return subprocess.run(command, check=False, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise TrackingError(f"git executable not found: {self.git}") from e

    def _run_checked(self, *args: str) -> str:
        completed = self._run(*args)
        if completed.returncode != 0:
            raise TrackingError(
                f"git {' '.join(args)} failed ({completed.returncode}): {completed.stderr.strip()}"
            )
        return completed.stdout

    def is_tracking_enabled(self) -> bool:
        """True if git-lfs is installed and its filter is configured."""
        if self._run("lfs", "version").returncode != 0:
            logger.debug("git lfs is not installed")
            return False
        for key in ("filter.lfs.process", "filter.lfs.smudge"):
            completed = self._run("config", "--get", key)
            if completed.returncode == 0 and completed.stdout.strip():
                return True
        logger.debug("git lfs filter is not configured")
        return False

    def list_lfs_files(self) -> list[LfsFile]:
        return parse_ls_files_output(self._run_checked("lfs", "ls-files", "--long"))

    def iter_tracked_assets(self) -> Iterator[TrackedAsset]:
        """
        Yield the LFS-tracked map assets with their object ids.

        Raises:
            TrackingError: If the files cannot be listed
        """
        for lfs_file in self.list_lfs_files():
            if Path(lfs_file.path).suffix.lower() not in self.asset_extensions:
                continue
            yield TrackedAsset(logical_path=lfs_file.path, content_id=lfs_file.oid)

    def is_working_copy_clean(self) -> bool:
        """True if no LFS-tracked file has uncommitted changes."""
        tracked = {lfs_file.path for lfs_file in self.list_lfs_files()}
        changed = parse_status_porcelain_z(self._run_checked("status", "--porcelain", "-z"))
        dirty = sorted(tracked & changed)
        for path in dirty:
            logger.debug(f"Uncommitted change to tracked file: {path}")
        return not dirty
