"""
Artifact location for tracked map assets.

Maps a tracked source asset onto its built data artifact paths:

    <project_dir>/<asset_dir>/<base>_BuiltData.<ext>                  - local copy
    <sync_root>/<project>/<asset_dir>/<base>_BuiltData_<id>.<ext>     - remote version

The content id is part of the remote file name, so every version of an
asset's built data lives in its own file and is never overwritten by another.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from django.conf import settings

from builtdata.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = "_BuiltData"
DEFAULT_ARTIFACT_EXTENSION = "uasset"

# Characters forbidden in filenames on most filesystems
INVALID_CHARS = '<>:"|?*\x00'


@dataclass(frozen=True)
class TrackedAsset:
    """A tracked source asset and the content id of its committed version."""

    logical_path: str
    content_id: str

    def __str__(self):
        return f"{self.logical_path}@{self.content_id}"


@dataclass(frozen=True)
class ArtifactLocation:
    """Local and remote paths of one asset's built data."""

    local_path: Path
    remote_path: Path
    base_name: str
    content_id: str
    extension: str

    @property
    def remote_dir(self) -> Path:
        return self.remote_path.parent

    @property
    def artifact_prefix(self) -> str:
        """File name prefix shared by every remote version of this asset."""
        return f"{self.base_name}{ARTIFACT_SUFFIX}_"

    @property
    def retention_pattern(self) -> str:
        """Glob matching every remote version of this asset."""
        return f"{self.artifact_prefix}*.{self.extension}"

    def content_id_from_name(self, name: str) -> str | None:
        """
        Extract the embedded content id from a remote artifact file name.

        Returns:
            The content id, or None if the name is not a version of this asset
        """
        suffix = f".{self.extension}"
        if not name.startswith(self.artifact_prefix) or not name.endswith(suffix):
            return None
        content_id = name[len(self.artifact_prefix) : -len(suffix)]
        if not content_id or _is_nested_artifact(content_id):
            # Version of a sibling asset whose own name ends in the suffix
            return None
        return content_id


def _is_nested_artifact(content_id: str) -> bool:
    return f"{ARTIFACT_SUFFIX}_" in f"_{content_id}"


def _normalize_logical_path(logical_path: str) -> PurePosixPath:
    if not logical_path or not logical_path.strip():
        raise ConfigurationError("Asset path is empty")

    path = PurePosixPath(logical_path.replace("\\", "/"))
    if path.is_absolute() or (path.parts and path.parts[0].endswith(":")):
        raise ConfigurationError(f"Asset path must be relative: {logical_path}")
    if ".." in path.parts:
        raise ConfigurationError(f"Asset path escapes the project: {logical_path}")
    if not path.stem or path.stem == ".":
        raise ConfigurationError(f"Asset path has no file name: {logical_path}")
    return path


def _validate_content_id(content_id: str) -> None:
    if not content_id or not content_id.strip():
        raise ConfigurationError("Content id is empty")
    if "/" in content_id or "\\" in content_id or content_id in (".", ".."):
        raise ConfigurationError(f"Content id contains a path separator: {content_id}")
    if any(char in content_id for char in INVALID_CHARS):
        raise ConfigurationError(f"Content id contains invalid characters: {content_id}")
    if _is_nested_artifact(content_id):
        raise ConfigurationError(f"Content id contains the {ARTIFACT_SUFFIX} marker: {content_id}")


def locate(
    logical_path: str,
    content_id: str,
    sync_root: str | Path,
    project_name: str,
    project_dir: str | Path | None = None,
    extension: str = DEFAULT_ARTIFACT_EXTENSION,
) -> ArtifactLocation:
    """
    Compute the local and remote built data paths for a tracked asset.

    Args:
        logical_path: Asset path relative to the project (e.g. "Content/Maps/Foo.umap")
        content_id: Content id of the asset's committed version
        sync_root: Shared storage root
        project_name: Project directory name under the sync root
        project_dir: Project checkout; the local path is relative when omitted
        extension: Built data file extension, without the dot

    Returns:
        ArtifactLocation for the asset

    Raises:
        ConfigurationError: If any input is malformed
    """
    path = _normalize_logical_path(logical_path)
    _validate_content_id(content_id)
    if not project_name or "/" in project_name or "\\" in project_name:
        raise ConfigurationError(f"Invalid project name: {project_name!r}")
    if not sync_root:
        raise ConfigurationError("Sync root is empty")

    extension = extension.lstrip(".")
    asset_dir = Path(*path.parent.parts) if path.parent.parts else Path()
    base_name = path.stem

    local_dir = Path(project_dir) / asset_dir if project_dir is not None else asset_dir
    local_path = local_dir / f"{base_name}{ARTIFACT_SUFFIX}.{extension}"
    remote_path = (
        Path(sync_root)
        / project_name
        / asset_dir
        / f"{base_name}{ARTIFACT_SUFFIX}_{content_id}.{extension}"
    )

    return ArtifactLocation(
        local_path=local_path,
        remote_path=remote_path,
        base_name=base_name,
        content_id=content_id,
        extension=extension,
    )


class ArtifactLocator:
    """
    Resolves artifact locations for one project and sync root.

    Binds the run-wide inputs of locate() so callers only pass the asset.
    """

    def __init__(
        self,
        sync_root: str | Path,
        project_name: str,
        project_dir: str | Path,
        extension: str | None = None,
    ):
        self.sync_root = Path(sync_root)
        self.project_name = project_name
        self.project_dir = Path(project_dir)
        self.extension = extension or getattr(
            settings, "BUILTDATA_ARTIFACT_EXTENSION", DEFAULT_ARTIFACT_EXTENSION
        )

    def locate(self, asset: TrackedAsset) -> ArtifactLocation:
        location = locate(
            asset.logical_path,
            asset.content_id,
            self.sync_root,
            self.project_name,
            project_dir=self.project_dir,
            extension=self.extension,
        )
        logger.debug(f"Located {asset}: {location.local_path} <-> {location.remote_path}")
        return location
