"""Workspace: the directory bundles are installed into and its three store files."""

from __future__ import annotations

import subprocess
from pathlib import Path

from augent.config import get_settings
from augent.constants import INDEX_FILENAME, LOCKFILE_FILENAME, MANIFEST_FILENAME, WORKSPACE_DIR
from augent.core.logging.logger import get_logger
from augent.sources.reference import repo_name_from_url
from augent.workspace.index import WorkspaceIndex, load_index, save_index
from augent.workspace.lockfile import Lockfile, load_lockfile, save_lockfile
from augent.workspace.manifest import BundleManifest, load_manifest, save_manifest
from augent.workspace.store import read_text

logger = get_logger(__name__)


def find_workspace_root(start: Path | None = None) -> Path:
    """Return the nearest directory holding ``.augent``, or ``start`` itself."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / WORKSPACE_DIR).is_dir():
            return candidate
    return current


def infer_workspace_name(root: Path, git_binary: str | None = None) -> str:
    """Name a workspace after its git origin, else ``@local/<directory>``."""
    git_binary = git_binary or get_settings().git_binary
    try:
        result = subprocess.run(
            [git_binary, "-C", str(root), "config", "--get", "remote.origin.url"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        url = ""
    else:
        url = result.stdout.strip() if result.returncode == 0 else ""
    if url:
        return repo_name_from_url(url)
    return f"@local/{root.name or 'workspace'}"


class Workspace:
    """In-memory view of a workspace's manifest, lockfile and index."""

    def __init__(
        self,
        root: Path,
        *,
        manifest: BundleManifest,
        lockfile: Lockfile,
        index: WorkspaceIndex,
        lockfile_text: str | None = None,
    ) -> None:
        self.root = root
        self.manifest = manifest
        self.lockfile = lockfile
        self.index = index
        # Serialized lockfile as read from disk; ``None`` when there was none.
        self.lockfile_text = lockfile_text

    @property
    def config_dir(self) -> Path:
        return self.root / WORKSPACE_DIR

    @property
    def manifest_path(self) -> Path:
        return self.config_dir / MANIFEST_FILENAME

    @property
    def lockfile_path(self) -> Path:
        return self.config_dir / LOCKFILE_FILENAME

    @property
    def index_path(self) -> Path:
        return self.config_dir / INDEX_FILENAME

    @property
    def store_paths(self) -> tuple[Path, Path, Path]:
        return self.manifest_path, self.lockfile_path, self.index_path

    @property
    def name(self) -> str:
        return self.manifest.name or infer_workspace_name(self.root)

    @property
    def has_lockfile(self) -> bool:
        return self.lockfile_text is not None

    @classmethod
    def open(cls, root: Path) -> "Workspace":
        """Load the stores under ``root``; missing files start out empty."""
        root = root.resolve()
        config_dir = root / WORKSPACE_DIR

        manifest_path = config_dir / MANIFEST_FILENAME
        if manifest_path.is_file():
            manifest = load_manifest(manifest_path)
        else:
            manifest = BundleManifest()
        if not manifest.name:
            # Inject the externally known name instead of leaving it unset.
            manifest.name = infer_workspace_name(root)

        lockfile_path = config_dir / LOCKFILE_FILENAME
        lockfile_text: str | None = None
        if lockfile_path.is_file():
            lockfile_text = read_text(lockfile_path)
            lockfile = load_lockfile(lockfile_path)
        else:
            lockfile = Lockfile(name=manifest.name)

        index_path = config_dir / INDEX_FILENAME
        if index_path.is_file():
            index = load_index(index_path)
        else:
            index = WorkspaceIndex(name=manifest.name)

        return cls(
            root,
            manifest=manifest,
            lockfile=lockfile,
            index=index,
            lockfile_text=lockfile_text,
        )

    def save(self, *, include_lockfile: bool = True) -> None:
        """Persist the stores, each through an atomic rename.

        Frozen installs pass ``include_lockfile=False`` so the lockfile is never
        rewritten.
        """
        self.index.name = self.name
        save_manifest(self.manifest_path, self.manifest)
        if include_lockfile:
            self.lockfile.name = self.name
            save_lockfile(self.lockfile_path, self.lockfile)
            self.lockfile_text = self.lockfile.to_json()
        save_index(self.index_path, self.index)
        logger.debug("Saved workspace stores", data={"root": str(self.root)})

    def relative(self, path: Path) -> str:
        return path.resolve().relative_to(self.root).as_posix()
