"""
Run workspace management.

A workspace is a uniquely named directory under the sandbox root that holds
every artifact of one run. Filenames are the only durable contract:

    image_{i}.jpg|png   audio_{i}.mp3   segment_{i}.mp4   video_{i}.mp4
    concat_list.txt     final_video.mp4 / final.mp4
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union
from urllib.parse import parse_qs, quote, urlparse

from core.errors import SandboxViolation, WorkspaceInvalid


logger = logging.getLogger(__name__)

DEFAULT_SANDBOX_ROOT = tempfile.gettempdir()
WORKSPACE_PREFIX = "video-gen-"
ARTIFACT_ENDPOINT = "/api/temp-file"

CONCAT_MANIFEST = "concat_list.txt"
FINAL_VIDEO = "final_video.mp4"
FINAL_ASSEMBLY = "final.mp4"


def resolve_in_sandbox(path: Union[str, Path], sandbox_root: Union[str, Path] = DEFAULT_SANDBOX_ROOT) -> Path:
    """
    Normalise a path and check it lies strictly under the sandbox root.

    The lexical check runs first, so a path that plainly escapes the root
    never reaches the filesystem. Paths that pass are checked again with
    symlinks resolved, so a link inside the root cannot point out of it.

    Raises:
        SandboxViolation: If the path escapes the root
    """
    if not path:
        raise WorkspaceInvalid("Path is required")

    root = os.path.normpath(os.path.abspath(str(sandbox_root)))
    candidate = os.path.normpath(os.path.abspath(str(path)))

    if not _is_under(candidate, root) or not _is_under(os.path.realpath(candidate), os.path.realpath(root)):
        raise SandboxViolation(
            f"Access is only allowed under {root}",
            details={"path": str(path)}
        )
    return Path(candidate)


def _is_under(candidate: str, root: str) -> bool:
    return candidate.startswith(root.rstrip(os.sep) + os.sep)


def artifact_url(path: Union[str, Path]) -> str:
    """URL under which the artifact endpoint serves a local file"""
    return f"{ARTIFACT_ENDPOINT}?path={quote(str(path), safe='')}"


def path_from_artifact_url(url: str) -> Optional[str]:
    """Local path behind an artifact URL, or None for anything else"""
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme or not parsed.path.endswith(ARTIFACT_ENDPOINT):
        return None
    values = parse_qs(parsed.query).get("path")
    return values[0] if values else None


def is_remote_url(url: Optional[str]) -> bool:
    return bool(url) and url.startswith(("http://", "https://"))


class RunWorkspace:
    """
    Exclusively owned scratch directory for one run.

    Lifecycle: create -> populate -> read (assembly) -> cleanup. Cleanup is
    idempotent and never raises; a workspace marked `keep` survives cleanup
    so a follow-up request can assemble from it.
    """

    def __init__(self, path: Union[str, Path], sandbox_root: Union[str, Path] = DEFAULT_SANDBOX_ROOT, keep: bool = False):
        self.path = Path(path)
        self.sandbox_root = Path(sandbox_root)
        self.keep = keep
        self._reclaimed = False

    @classmethod
    def create(
        cls,
        sandbox_root: Union[str, Path] = DEFAULT_SANDBOX_ROOT,
        prefix: str = WORKSPACE_PREFIX,
        keep: bool = False
    ) -> "RunWorkspace":
        """Create a new uniquely named workspace under the sandbox root."""
        Path(sandbox_root).mkdir(parents=True, exist_ok=True)
        path = tempfile.mkdtemp(prefix=prefix, dir=str(sandbox_root))
        logger.debug("Created workspace %s", path)
        return cls(path, sandbox_root=sandbox_root, keep=keep)

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        sandbox_root: Union[str, Path] = DEFAULT_SANDBOX_ROOT,
        keep: bool = False
    ) -> "RunWorkspace":
        """
        Take over an existing workspace (e.g. kept for later assembly).

        Raises:
            SandboxViolation: Path outside the sandbox root
            WorkspaceInvalid: Path missing or not a directory
        """
        resolved = resolve_in_sandbox(path, sandbox_root)
        if not resolved.exists():
            raise WorkspaceInvalid(
                "Workspace does not exist, generate the content again",
                details={"path": str(resolved)}
            )
        if not resolved.is_dir():
            raise WorkspaceInvalid("Workspace path is not a directory", details={"path": str(resolved)})
        return cls(resolved, sandbox_root=sandbox_root, keep=keep)

    @property
    def exists(self) -> bool:
        return self.path.is_dir()

    @property
    def reclaimed(self) -> bool:
        return self._reclaimed

    def image_path(self, index: int, ext: str = "jpg") -> Path:
        return self.path / f"image_{index}.{ext}"

    def audio_path(self, index: int) -> Path:
        return self.path / f"audio_{index}.mp3"

    def segment_path(self, index: int) -> Path:
        """Generated video clip (video strategy)"""
        return self.path / f"segment_{index}.mp4"

    def clip_path(self, index: int) -> Path:
        """Synthesised Ken Burns clip (image+audio strategy)"""
        return self.path / f"video_{index}.mp4"

    @property
    def manifest_path(self) -> Path:
        return self.path / CONCAT_MANIFEST

    @property
    def final_video_path(self) -> Path:
        return self.path / FINAL_VIDEO

    @property
    def final_assembly_path(self) -> Path:
        return self.path / FINAL_ASSEMBLY

    def cleanup(self, force: bool = False) -> bool:
        """
        Recursively delete the workspace.

        Errors are logged, never propagated, so they cannot mask the primary
        failure of a run.

        Returns:
            True if the directory was removed by this call
        """
        if self._reclaimed:
            return False
        if self.keep and not force:
            logger.info("Keeping workspace %s for later assembly", self.path)
            return False

        self._reclaimed = True
        try:
            shutil.rmtree(self.path)
            logger.debug("Removed workspace %s", self.path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Failed to clean up workspace %s: %s", self.path, e)
            return False

    def __repr__(self) -> str:
        return f"RunWorkspace(path={str(self.path)!r}, keep={self.keep})"
