"""Built-in platform definitions and detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Sequence

from augent.core.exceptions import ConfigurationError


class MergeStrategy(str, Enum):
    REPLACE = "replace"
    SHALLOW = "shallow"
    DEEP = "deep"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class TransformRule:
    source: str
    target: str
    merge: MergeStrategy = MergeStrategy.REPLACE
    extension: str | None = None


@dataclass(frozen=True)
class Platform:
    id: str
    name: str
    directory: str
    detection: tuple[str, ...] = ()
    transforms: tuple[TransformRule, ...] = field(default_factory=tuple)

    def is_detected(self, workspace_root: Path) -> bool:
        markers = self.detection or (self.directory,)
        return any((workspace_root / marker).exists() for marker in markers)


def _rule(
    source: str,
    target: str,
    merge: MergeStrategy = MergeStrategy.REPLACE,
    extension: str | None = None,
) -> TransformRule:
    return TransformRule(source=source, target=target, merge=merge, extension=extension)


def _skills(directory: str) -> tuple[TransformRule, ...]:
    return (
        _rule("skills/**/SKILL.md", f"{directory}/skills/{{name}}/SKILL.md"),
        _rule("skills/**/*", f"{directory}/skills/{{name}}/**/*"),
    )


def _mcp(target: str) -> TransformRule:
    return _rule("mcp.jsonc", target, MergeStrategy.DEEP)


def _agents_doc(target: str = "AGENTS.md") -> TransformRule:
    return _rule("AGENTS.md", target, MergeStrategy.COMPOSITE)


PLATFORMS: tuple[Platform, ...] = (
    Platform(
        "antigravity",
        "Google Antigravity",
        ".agent",
        detection=(".agent",),
        transforms=(
            _rule("rules/**/*.md", ".agent/rules/**/*.md"),
            _rule("commands/**/*.md", ".agent/workflows/**/*.md"),
            *_skills(".agent"),
        ),
    ),
    Platform(
        "augment",
        "Augment Code",
        ".augment",
        detection=(".augment",),
        transforms=(
            _rule("rules/**/*.md", ".augment/rules/**/*.md"),
            _rule("commands/**/*.md", ".augment/commands/**/*.md"),
        ),
    ),
    Platform(
        "claude",
        "Claude Code",
        ".claude",
        detection=(".claude", "CLAUDE.md"),
        transforms=(
            _rule("commands/**/*.md", ".claude/commands/**/*.md"),
            _rule("rules/**/*.md", ".claude/rules/**/*.md"),
            _rule("agents/**/*.md", ".claude/agents/**/*.md"),
            *_skills(".claude"),
            _mcp(".mcp.json"),
            _agents_doc("CLAUDE.md"),
        ),
    ),
    Platform(
        "claude-plugin",
        "Claude Code Plugin",
        ".claude-plugin",
        detection=(".claude-plugin/plugin.json",),
        transforms=(
            _rule("rules/**/*.md", "rules/**/*.md"),
            _rule("commands/**/*.md", "commands/**/*.md"),
            _rule("agents/**/*.md", "agents/**/*.md"),
            _rule("skills/**/SKILL.md", "skills/{name}/SKILL.md"),
            _rule("skills/**/*", "skills/{name}/**/*"),
            _mcp(".mcp.json"),
        ),
    ),
    Platform(
        "copilot",
        "GitHub Copilot",
        ".github",
        detection=(
            ".github/copilot-instructions.md",
            ".github/instructions",
            ".github/skills",
            ".github/prompts",
        ),
        transforms=(
            _rule(
                "rules/**/*.md",
                ".github/instructions/{name}.instructions.md",
                extension="instructions.md",
            ),
            _rule(
                "commands/**/*.md",
                ".github/prompts/{name}.prompt.md",
                extension="prompt.md",
            ),
            _rule("agents/**/*.md", ".github/agents/{name}/AGENTS.md"),
            *_skills(".github"),
            _mcp(".github/mcp.json"),
            _agents_doc(),
        ),
    ),
    Platform(
        "cursor",
        "Cursor",
        ".cursor",
        detection=(".cursor",),
        transforms=(
            _rule("commands/**/*.md", ".cursor/commands/**/*.md"),
            _rule("rules/**/*.md", ".cursor/rules/**/*.mdc", extension="mdc"),
            _rule("agents/**/*.md", ".cursor/agents/**/*.md"),
            *_skills(".cursor"),
            _mcp(".cursor/mcp.json"),
            _agents_doc(),
        ),
    ),
    Platform(
        "codex",
        "Codex CLI",
        ".codex",
        detection=(".codex",),
        transforms=(
            _rule("commands/**/*.md", ".codex/prompts/**/*.md"),
            *_skills(".codex"),
            _agents_doc(),
        ),
    ),
    Platform(
        "factory",
        "Factory AI",
        ".factory",
        detection=(".factory",),
        transforms=(
            _rule("commands/**/*.md", ".factory/commands/**/*.md"),
            _rule("agents/**/*.md", ".factory/droids/**/*.md"),
            *_skills(".factory"),
            _mcp(".factory/settings/mcp.json"),
            _agents_doc(),
        ),
    ),
    Platform(
        "gemini",
        "Gemini CLI",
        ".gemini",
        detection=(".gemini", "GEMINI.md"),
        transforms=(
            _rule("commands/**/*.md", ".gemini/commands/**/*.md"),
            _rule("agents/**/*.md", ".gemini/agents/**/*.md"),
            *_skills(".gemini"),
            _mcp(".gemini/settings.json"),
            _agents_doc("GEMINI.md"),
        ),
    ),
    Platform(
        "junie",
        "JetBrains Junie",
        ".junie",
        detection=(".junie",),
        transforms=(
            _rule("rules/**/*.md", ".junie/guidelines.md", MergeStrategy.COMPOSITE),
            _rule("commands/**/*.md", ".junie/commands/**/*.md"),
            _rule("agents/**/*.md", ".junie/agents/**/*.md"),
            *_skills(".junie"),
            _mcp(".junie/mcp.json"),
            _agents_doc(),
        ),
    ),
    Platform(
        "kilo",
        "Kilo Code",
        ".kilocode",
        detection=(".kilocode",),
        transforms=(
            _rule("rules/**/*.md", ".kilocode/rules/**/*.md"),
            _rule("commands/**/*.md", ".kilocode/workflows/**/*.md"),
            *_skills(".kilocode"),
            _mcp(".kilocode/mcp.json"),
            _agents_doc(),
        ),
    ),
    Platform(
        "kiro",
        "Kiro",
        ".kiro",
        detection=(".kiro",),
        transforms=(
            _rule("rules/**/*.md", ".kiro/steering/**/*.md"),
            _mcp(".kiro/settings/mcp.json"),
        ),
    ),
    Platform(
        "opencode",
        "OpenCode",
        ".opencode",
        detection=(".opencode",),
        transforms=(
            _rule("commands/**/*.md", ".opencode/commands/**/*.md"),
            _rule("rules/**/*.md", ".opencode/rules/**/*.md"),
            _rule("agents/**/*.md", ".opencode/agents/**/*.md"),
            *_skills(".opencode"),
            _mcp(".opencode/opencode.json"),
            _agents_doc(),
        ),
    ),
    Platform(
        "qwen",
        "Qwen Code",
        ".qwen",
        detection=(".qwen", "QWEN.md"),
        transforms=(
            _rule("agents/**/*.md", ".qwen/agents/**/*.md"),
            *_skills(".qwen"),
            _agents_doc("QWEN.md"),
            _mcp(".qwen/settings.json"),
        ),
    ),
    Platform(
        "roo",
        "Roo Code",
        ".roo",
        detection=(".roo",),
        transforms=(
            _rule("commands/**/*.md", ".roo/commands/**/*.md"),
            *_skills(".roo"),
            _mcp(".roo/mcp.json"),
            _agents_doc(),
        ),
    ),
    Platform(
        "warp",
        "Warp",
        ".warp",
        detection=(".warp", "WARP.md"),
        transforms=(_agents_doc("WARP.md"),),
    ),
    Platform(
        "windsurf",
        "Windsurf",
        ".windsurf",
        detection=(".windsurf",),
        transforms=(
            _rule("rules/**/*.md", ".windsurf/rules/**/*.md"),
            *_skills(".windsurf"),
        ),
    ),
)

PLATFORM_ALIASES = {"cursor-ai": "cursor"}

_BY_ID = {platform.id: platform for platform in PLATFORMS}


def get_platform(platform_id: str) -> Platform | None:
    key = platform_id.strip().lower()
    return _BY_ID.get(PLATFORM_ALIASES.get(key, key))


def resolve_platforms(platform_ids: Iterable[str]) -> list[Platform]:
    """Look up platforms by id, keeping order and dropping duplicates."""
    resolved: list[Platform] = []
    unknown: list[str] = []
    for platform_id in platform_ids:
        platform = get_platform(platform_id)
        if platform is None:
            unknown.append(platform_id)
        elif platform not in resolved:
            resolved.append(platform)
    if unknown:
        known = ", ".join(sorted(_BY_ID))
        raise ConfigurationError(
            f"Unknown platform(s): {', '.join(unknown)}",
            f"known platforms: {known}",
        )
    return resolved


def detect_platforms(workspace_root: Path, platforms: Sequence[Platform] = PLATFORMS) -> list[Platform]:
    return [platform for platform in platforms if platform.is_detected(workspace_root)]


def platform_for_location(location: str, platforms: Sequence[Platform] = PLATFORMS) -> Platform | None:
    """The platform whose directory holds ``location``, if any."""
    for platform in platforms:
        if location.startswith(f"{platform.directory}/"):
            return platform
    return None
