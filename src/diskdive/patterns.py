"""Static name sets used while scanning."""

# Directories that are never counted or descended into (OS bookkeeping)
SKIP_PATTERNS = frozenset(
    {
        "$Recycle.Bin",
        "System Volume Information",
        "Recovery",
        "Config.Msi",
        ".Spotlight-V100",
        ".fseventsd",
        ".DocumentRevisions-V100",
        ".TemporaryItems",
        ".Trashes",
        ".vol",
        "lost+found",
    }
)

# Directory names that hold regenerable build or dependency output
CLEANABLE_PATTERNS = frozenset(
    {
        "node_modules",
        "vendor",
        ".venv",
        "venv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".tox",
        "target",
        "build",
        "dist",
        ".next",
        ".nuxt",
        ".turbo",
        ".parcel-cache",
        "bin",
        "obj",
        ".gradle",
        ".idea",
        ".vs",
    }
)

# Roots shown in overview mode (only those that exist are used)
OVERVIEW_ROOTS = [
    "~",
    "~/Downloads",
    "~/.cache",
    "~/Library",
    "/Applications",
    "/Library",
    "/opt",
    "/usr",
    "/var",
]


def is_skipped(name: str) -> bool:
    """Return True if a directory entry name is excluded from scanning."""
    return name in SKIP_PATTERNS


def is_cleanable(name: str) -> bool:
    """Return True if a directory name is a known regenerable artifact."""
    return name in CLEANABLE_PATTERNS
