"""Obtain a local directory for a bundle reference.

Local directory bundles are used in place. Git bundles are cloned with the
``git`` CLI into a cache laid out as ``<cache>/bundles/<url key>/<sha>/repository``
so that one checkout exists per repository commit. Marketplace plugins are
built from their repository into ``<cache>/plugins``.
"""

from __future__ import annotations

import hashlib
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from augent.config import Settings, get_settings
from augent.constants import DEFAULT_GIT_REF
from augent.core.exceptions import BundleNotFoundError, FetchFailedError, PathEscapeError
from augent.core.logging.logger import get_logger
from augent.sources.marketplace import materialize_plugin, split_plugin_path
from augent.sources.reference import BundleReference, cache_key_for_url, is_commit_sha

logger = get_logger(__name__)

REPOSITORY_DIR = "repository"


@dataclass(frozen=True)
class FetchedSource:
    root: Path
    reference: BundleReference
    sha: str | None = None
    ref: str | None = None


class BundleFetcher(Protocol):
    """Collaborator that turns a reference into a local directory."""

    def fetch(self, reference: BundleReference, *, pin: str | None = None) -> FetchedSource:
        """Return the local root for ``reference``; ``pin`` forces a git commit."""
        ...

    def locate(self, reference: BundleReference, sha: str | None) -> Path | None:
        """Return an already available local root without touching the network."""
        ...


class GitBundleFetcher:
    """Default fetcher: workspace-relative directories and cached git clones."""

    def __init__(
        self,
        workspace_root: Path,
        *,
        cache_dir: Path | None = None,
        git_binary: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        resolved_settings = settings or get_settings()
        self.workspace_root = workspace_root.resolve()
        self.cache_dir = (cache_dir or resolved_settings.cache_path).expanduser()
        self.git_binary = git_binary or resolved_settings.git_binary

    @property
    def bundles_dir(self) -> Path:
        return self.cache_dir / "bundles"

    @property
    def plugins_dir(self) -> Path:
        return self.cache_dir / "plugins"

    def fetch(self, reference: BundleReference, *, pin: str | None = None) -> FetchedSource:
        base, plugin = split_plugin_path(reference.path)
        if reference.kind == "dir":
            if plugin is None:
                return FetchedSource(root=self._local_root(reference), reference=reference)
            marketplace_root = self._local_root(BundleReference(kind="dir", path=base))
            digest = hashlib.sha256(str(marketplace_root).encode("utf-8")).hexdigest()[:16]
            target = self.plugins_dir / "local" / digest / plugin
            root = materialize_plugin(marketplace_root, plugin, target)
            return FetchedSource(root=root, reference=reference)

        url = reference.url or ""
        if pin:
            sha, ref = pin, reference.ref
        else:
            sha, ref = self._resolve_remote_ref(url, reference.ref)

        checkout = self._ensure_checkout(url, sha)
        if plugin is not None:
            marketplace_root = _resolve_repo_subdir(checkout, base)
            target = self.plugins_dir / cache_key_for_url(url) / sha / (base or ".") / plugin
            root = materialize_plugin(marketplace_root, plugin, target)
            logger.debug("Fetched marketplace plugin", data={"url": url, "plugin": plugin, "sha": sha})
            return FetchedSource(root=root, reference=reference, sha=sha, ref=ref)

        root = _resolve_repo_subdir(checkout, reference.path)
        if not root.is_dir():
            raise BundleNotFoundError(
                reference.describe(),
                f"path '{reference.path}' does not exist at commit {sha}",
            )
        logger.debug("Fetched git bundle", data={"url": url, "ref": ref, "sha": sha})
        return FetchedSource(root=root, reference=reference, sha=sha, ref=ref)

    def locate(self, reference: BundleReference, sha: str | None) -> Path | None:
        if split_plugin_path(reference.path)[1] is not None:
            # Plugin bundles never declare dependencies.
            return None
        if reference.kind == "dir":
            candidate = self.workspace_root / (reference.path or ".")
            return candidate if candidate.is_dir() else None
        if not sha:
            return None
        checkout = self.checkout_path(reference.url or "", sha)
        if not checkout.is_dir():
            return None
        try:
            root = _resolve_repo_subdir(checkout, reference.path)
        except PathEscapeError:
            return None
        return root if root.is_dir() else None

    def checkout_path(self, url: str, sha: str) -> Path:
        return self.bundles_dir / cache_key_for_url(url) / sha / REPOSITORY_DIR

    def _local_root(self, reference: BundleReference) -> Path:
        relative = reference.path or "."
        root = (self.workspace_root / relative).resolve()
        try:
            root.relative_to(self.workspace_root)
        except ValueError as exc:
            raise PathEscapeError(relative, self.workspace_root) from exc
        if not root.is_dir():
            raise BundleNotFoundError(relative, f"no directory at {root}")
        return root

    def _resolve_remote_ref(self, url: str, ref: str | None) -> tuple[str, str]:
        if is_commit_sha(ref):
            return ref, ref  # type: ignore[return-value]

        if ref:
            output = self._run_git(["ls-remote", url, ref, f"{ref}^{{}}"], source=url)
            sha = _parse_ls_remote_commit(output)
            if sha is None:
                raise FetchFailedError(url, f"ref not found: {ref}")
            return sha, ref

        output = self._run_git(["ls-remote", "--symref", url, "HEAD"], source=url)
        sha = _parse_ls_remote_commit(output)
        if sha is None:
            raise FetchFailedError(url, "unable to resolve repository HEAD")
        return sha, _parse_symref_branch(output) or DEFAULT_GIT_REF

    def _ensure_checkout(self, url: str, sha: str) -> Path:
        checkout = self.checkout_path(url, sha)
        if checkout.is_dir():
            return checkout

        entry_dir = checkout.parent
        entry_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=entry_dir, prefix=".clone-") as temp_dir_str:
            staged = Path(temp_dir_str) / REPOSITORY_DIR
            self._run_git(["clone", "--quiet", "--no-checkout", url, str(staged)], source=url)
            self._run_git(
                ["-C", str(staged), "checkout", "--quiet", "--detach", sha],
                source=url,
            )
            try:
                os.replace(staged, checkout)
            except OSError:
                # Another process populated the entry first.
                if not checkout.is_dir():
                    raise
                shutil.rmtree(staged, ignore_errors=True)
        logger.debug("Cached git checkout", data={"url": url, "sha": sha, "path": str(checkout)})
        return checkout

    def _run_git(self, args: list[str], *, source: str) -> str:
        command = [self.git_binary, *args]
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise FetchFailedError(source, f"unable to run git: {exc}") from exc
        if result.returncode != 0:
            stderr = result.stderr.strip() or result.stdout.strip() or "git command failed"
            raise FetchFailedError(source, f"git {' '.join(args)}: {stderr}")
        return result.stdout


def _resolve_repo_subdir(repo_root: Path, repo_subdir: str | None) -> Path:
    repo_root = repo_root.resolve()
    if not repo_subdir:
        return repo_root
    source_dir = (repo_root / Path(repo_subdir)).resolve()
    try:
        source_dir.relative_to(repo_root)
    except ValueError as exc:
        raise PathEscapeError(repo_subdir, "repository root") from exc
    return source_dir


def _parse_ls_remote_commit(output: str) -> str | None:
    fallback: str | None = None
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("ref:"):
            continue
        parts = line.split(maxsplit=1)
        commit = parts[0].strip()
        if not commit:
            continue
        ref = parts[1].strip() if len(parts) > 1 else ""
        if ref.endswith("^{}"):
            return commit
        if fallback is None:
            fallback = commit
    return fallback


def _parse_symref_branch(output: str) -> str | None:
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line.startswith("ref:"):
            continue
        target = line[len("ref:") :].split()[0]
        prefix = "refs/heads/"
        if target.startswith(prefix):
            return target[len(prefix) :]
    return None
