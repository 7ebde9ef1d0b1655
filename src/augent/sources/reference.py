"""Parse bundle source strings and derive stable bundle identities and names."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Literal
from urllib.parse import urlparse

from augent.constants import GITHUB_URL_TEMPLATE
from augent.core.exceptions import InvalidBundleReferenceError, PathEscapeError

SourceKind = Literal["dir", "git"]

_WINDOWS_DRIVE = re.compile(r"^/?[A-Za-z]:")
_SHA_PATTERN = re.compile(r"^[0-9a-f]{40}$")


@dataclass(frozen=True)
class BundleIdentity:
    """What bundle this is, independent of the ref it is pinned to."""

    kind: SourceKind
    location: str
    subpath: str | None = None

    @property
    def key(self) -> str:
        if self.kind == "dir":
            return f"dir:{self.location}"
        if self.subpath:
            return f"git:{self.location}:{self.subpath}"
        return f"git:{self.location}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class BundleReference:
    """A parsed bundle source.

    For ``dir`` references ``path`` is the local directory as written. For
    ``git`` references ``path`` is the optional subdirectory inside the
    repository and ``ref`` the optional branch, tag or commit.
    """

    kind: SourceKind
    path: str | None = None
    url: str | None = None
    ref: str | None = None

    @property
    def identity(self) -> BundleIdentity:
        if self.kind == "dir":
            return BundleIdentity("dir", normalize_relative_path(self.path or "."))
        return BundleIdentity("git", normalize_git_url(self.url or ""), self.path or None)

    def describe(self) -> str:
        if self.kind == "dir":
            return self.path or "."
        text = self.url or ""
        if self.ref:
            text = f"{text}#{self.ref}"
        if self.path:
            text = f"{text}:{self.path}"
        return text


def parse_bundle_reference(text: str) -> BundleReference:
    """Parse a user supplied bundle source string.

    Accepted forms:

    - local paths: ``./x``, ``../x``, ``.``, ``/abs/x``, ``file:///abs/x``
    - GitHub shorthands: ``github:owner/repo``, ``@owner/repo``, ``owner/repo``
    - git URLs: ``https://``, ``http://``, ``ssh://``, ``git@host:``, ``file://``
    - a ref as ``#ref`` or ``@ref``, a subdirectory as ``:path`` (or ``#ref:path``)
    - GitHub web URLs such as ``https://github.com/o/r/tree/<ref>/<path>``
    """
    raw = text.strip() if text else ""
    if not raw:
        raise InvalidBundleReferenceError(text or "", "input cannot be empty")

    if raw.startswith("file://"):
        after = raw[len("file://") :]
        if not _file_url_targets_git(after):
            return BundleReference(kind="dir", path=after)
        return _parse_git_reference(raw)

    if _looks_like_local_path(raw):
        return BundleReference(kind="dir", path=raw)

    return _parse_git_reference(raw)


def _file_url_targets_git(after_protocol: str) -> bool:
    if "#" in after_protocol or "@" in after_protocol:
        return True
    return ":" in after_protocol[1:]


def _looks_like_local_path(raw: str) -> bool:
    if raw == "." or raw.startswith(("./", "../")):
        return True
    if raw.startswith(".") and "://" not in raw:
        return True
    if raw.startswith("/") or _WINDOWS_DRIVE.match(raw):
        return True
    if _is_github_shorthand(raw) or raw.startswith(("@", "github:", "git@")) or "://" in raw:
        return False
    if ":" in raw:
        return False
    return "-" in raw or "_" in raw or "/" in raw


def _is_github_shorthand(raw: str) -> bool:
    return (
        "://" not in raw
        and not raw.startswith(("git@", "github:", "@", "/", "."))
        and raw.count("/") == 1
        and not _WINDOWS_DRIVE.match(raw)
    )


def _parse_git_reference(raw: str) -> BundleReference:
    web = _parse_github_web_url(raw)
    if web is not None:
        return web

    main_part, fragment = _split_fragment(raw)
    subpath: str | None = None
    ref: str | None = None

    if fragment is not None:
        if ":" in fragment:
            ref_part, _, path_part = fragment.partition(":")
            ref = ref_part or None
            subpath = path_part or None
        else:
            ref = fragment or None
    elif not _is_ssh_url(main_part):
        main_part, subpath = _split_subpath(main_part)

    url = _normalize_repo_url(main_part, original=raw)
    return BundleReference(
        kind="git",
        url=url,
        path=_clean_subpath(subpath, original=raw),
        ref=ref,
    )


def _split_fragment(raw: str) -> tuple[str, str | None]:
    if "#" in raw:
        main_part, _, fragment = raw.partition("#")
        return main_part, fragment
    if raw.startswith(("git@", "ssh://")):
        return raw, None
    search_from = 1 if raw.startswith("@") else 0
    at_pos = raw.find("@", search_from)
    if at_pos <= 0:
        return raw, None
    return raw[:at_pos], raw[at_pos + 1 :]


def _split_subpath(main_part: str) -> tuple[str, str | None]:
    prefix_len = 0
    for prefix in ("github:", "https://", "http://", "file://"):
        if main_part.startswith(prefix):
            prefix_len = len(prefix)
            break
    rest = main_part[prefix_len:]
    drive = _WINDOWS_DRIVE.match(rest)
    skip = drive.end() if drive else 0
    colon = rest.find(":", skip)
    if colon < 0:
        return main_part, None
    colon += prefix_len
    before, after = main_part[:colon], main_part[colon + 1 :]
    try:
        _normalize_repo_url(before, original=main_part)
    except InvalidBundleReferenceError:
        return main_part, None
    return before, after


def _normalize_repo_url(value: str, *, original: str) -> str:
    candidate = value.strip()
    if not candidate:
        raise InvalidBundleReferenceError(original, "missing repository")

    if candidate.startswith("github:"):
        return _github_url(candidate[len("github:") :], original)
    if candidate.startswith("@"):
        return _github_url(candidate[1:], original)
    if candidate.startswith(("https://", "http://", "ssh://", "file://")):
        parsed = urlparse(candidate)
        if parsed.scheme != "file" and not parsed.netloc:
            raise InvalidBundleReferenceError(original, "URL has no host")
        return candidate
    if candidate.startswith("git@"):
        if ":" not in candidate:
            raise InvalidBundleReferenceError(original, "SSH URL has no repository path")
        return candidate
    if _is_github_shorthand(candidate):
        return _github_url(candidate, original)
    raise InvalidBundleReferenceError(original, "not a path, URL or owner/repo shorthand")


def _github_url(owner_repo: str, original: str) -> str:
    parts = [part for part in owner_repo.strip("/").split("/") if part]
    if len(parts) != 2:
        raise InvalidBundleReferenceError(original, "expected owner/repo")
    owner, repo = parts
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return GITHUB_URL_TEMPLATE.format(owner=owner, repo=repo)


def _parse_github_web_url(raw: str) -> BundleReference | None:
    prefix = "https://github.com/"
    if not raw.startswith(prefix):
        return None
    parts = raw[len(prefix) :].split("/")
    if len(parts) < 4 or parts[2] != "tree":
        return None
    owner, repo, _, ref = parts[:4]
    subpath = "/".join(part for part in parts[4:] if part) or None
    return BundleReference(
        kind="git",
        url=GITHUB_URL_TEMPLATE.format(owner=owner, repo=repo),
        ref=ref or None,
        path=_clean_subpath(subpath, original=raw),
    )


def _is_ssh_url(value: str) -> bool:
    return value.startswith(("git@", "ssh://"))


def _clean_subpath(subpath: str | None, *, original: str) -> str | None:
    if subpath is None:
        return None
    stripped = subpath.strip().strip("/")
    if not stripped:
        return None
    posix = PurePosixPath(stripped.replace("\\", "/"))
    if ".." in posix.parts:
        raise PathEscapeError(subpath, "repository root")
    normalized = str(posix)
    return None if normalized == "." else normalized


def normalize_git_url(url: str) -> str:
    """Return the identity form of a git URL (no trailing slash or ``.git``)."""
    normalized = url.strip().rstrip("/")
    if normalized.endswith(".git"):
        normalized = normalized[: -len(".git")]
    return normalized


def normalize_relative_path(path: str) -> str:
    """Collapse ``./`` segments; the workspace root itself is ``.``."""
    posix = PurePosixPath(path.replace("\\", "/"))
    parts = [part for part in posix.parts if part not in ("", ".")]
    return "/".join(parts) if parts else "."


def join_relative_path(base: str | None, child: str, *, root_label: str) -> str:
    """Join ``child`` onto ``base`` lexically, refusing to climb above the root."""
    if child.startswith("/") or _WINDOWS_DRIVE.match(child):
        raise PathEscapeError(child, root_label)
    parts: list[str] = []
    if base and base != ".":
        parts.extend(normalize_relative_path(base).split("/"))
    for segment in child.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise PathEscapeError(child, root_label)
            parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts) if parts else "."


def is_commit_sha(ref: str | None) -> bool:
    return bool(ref and _SHA_PATTERN.match(ref))


def repo_name_from_url(url: str) -> str:
    """Derive ``@owner/repo`` from a git URL."""
    cleaned = normalize_git_url(url)
    if cleaned.startswith("git@") and ":" in cleaned:
        repo_path = cleaned.split(":", 1)[1]
    else:
        parsed = urlparse(cleaned)
        repo_path = parsed.path if parsed.scheme else cleaned
    parts = [part for part in repo_path.split("/") if part]
    if len(parts) >= 2:
        return f"@{parts[-2]}/{parts[-1]}"
    return f"@unknown/{repo_path.strip('/').replace('/', '-') or 'repo'}"


def git_bundle_name(url: str, subpath: str | None) -> str:
    base = repo_name_from_url(url)
    return f"{base}:{subpath}" if subpath else base


def cache_key_for_url(url: str) -> str:
    """Filesystem-safe cache directory name for a repository URL."""
    key = url.strip()
    for prefix in ("https://", "http://", "ssh://", "file://", "git@"):
        if key.startswith(prefix):
            key = key[len(prefix) :]
            break
    key = key.rstrip("/")
    if key.endswith(".git"):
        key = key[: -len(".git")]
    key = re.sub(r"[:/\\]+", "-", key).strip("-")
    return re.sub(r"[^A-Za-z0-9._@-]", "_", key) or "repository"
