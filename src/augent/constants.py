"""
Global constants for augent with minimal dependencies to avoid circular imports.
"""

WORKSPACE_DIR = ".augent"
MANIFEST_FILENAME = "augent.yaml"
LOCKFILE_FILENAME = "augent.lock"
INDEX_FILENAME = "augent.index.yaml"

CONFIG_FILENAME = "augent.config.yaml"
DEFAULT_CACHE_DIR = "~/.cache/augent"

# Bundle directories scanned for resources, in discovery order
RESOURCE_DIRS = ("commands", "rules", "agents", "skills", "root")
# Resource files recognised at the bundle root
RESOURCE_FILES = ("mcp.jsonc", "AGENTS.md")
SKILL_FILENAME = "SKILL.md"

DEFAULT_GIT_REF = "main"
GITHUB_URL_TEMPLATE = "https://github.com/{owner}/{repo}.git"

HASH_PREFIX = "sha256:"

COMPOSITE_SEPARATOR = "<!-- Augent: Additional content below -->"

BINARY_EXTENSIONS = frozenset(
    {
        "zip",
        "pdf",
        "png",
        "jpg",
        "jpeg",
        "gif",
        "webp",
        "ico",
        "woff",
        "woff2",
        "ttf",
        "otf",
        "eot",
        "mp3",
        "mp4",
        "webm",
        "avi",
        "mov",
        "exe",
        "dll",
        "so",
        "dylib",
        "bin",
    }
)
