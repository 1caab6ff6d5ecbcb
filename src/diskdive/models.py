"""Data models for diskdive."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Files at or above this size are reported as large files
LARGE_FILE_THRESHOLD = 100 * 1024 * 1024  # 100 MiB


def format_size(size_bytes: int) -> str:
    """Format bytes to a human-readable string (binary units)."""
    unit = 1024
    if size_bytes < unit:
        return f"{size_bytes} B"
    div, exp = unit, 0
    n = size_bytes // unit
    while n >= unit and exp < 5:
        div *= unit
        exp += 1
        n //= unit
    return f"{size_bytes / div:.1f} {'KMGTPE'[exp]}B"


class DirectoryEntry(BaseModel):
    """One immediate child of a scanned directory."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Entry name")
    path: str = Field(..., description="Absolute path")
    size: int = Field(0, ge=0, description="Size in bytes (lower bound for directories)")
    is_dir: bool = Field(False, description="Whether the entry is a directory")
    last_access: Optional[datetime] = Field(None, description="Last access time, if known")
    is_cleanable: bool = Field(False, description="Name matches a regenerable artifact")

    @property
    def size_human(self) -> str:
        """Human-readable size string."""
        return format_size(self.size)


class LargeFileEntry(BaseModel):
    """A non-directory child at or above the large-file threshold."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    size: int = Field(..., ge=0)

    @property
    def size_human(self) -> str:
        """Human-readable size string."""
        return format_size(self.size)


class ScanResult(BaseModel):
    """Result of scanning one directory's immediate children."""

    entries: list[DirectoryEntry] = Field(default_factory=list, description="Size-descending")
    large_files: list[LargeFileEntry] = Field(default_factory=list, description="Size-descending")
    total_size: int = Field(0, ge=0, description="Sum of entry sizes")
    total_files: int = Field(0, ge=0, description="Files observed by the scan")

    @model_validator(mode="after")
    def check_total(self) -> "ScanResult":
        expected = sum(e.size for e in self.entries)
        if self.total_size != expected:
            raise ValueError(f"total_size {self.total_size} != sum of entries {expected}")
        return self

    @property
    def size_human(self) -> str:
        """Human-readable total size."""
        return format_size(self.total_size)


class CacheRecord(BaseModel):
    """Full scan record persisted for one directory."""

    path: str = Field(..., description="Absolute path that was scanned")
    result: ScanResult
    dir_mtime: float = Field(..., description="Directory mtime when scanned (epoch seconds)")
    scanned_at: float = Field(..., description="When the scan finished (epoch seconds)")


class OverviewSnapshot(BaseModel):
    """Cached aggregate size of a path."""

    size: int = Field(..., description="Total size in bytes")
    updated: datetime = Field(default_factory=datetime.now)


class HistoryFrame(BaseModel):
    """Saved view of a directory, restored on back-navigation."""

    path: str
    entries: list[DirectoryEntry] = Field(default_factory=list)
    large_files: list[LargeFileEntry] = Field(default_factory=list)
    total_size: int = 0
    total_files: int = 0
    selected: int = 0
    entry_offset: int = 0
    large_selected: int = 0
    large_offset: int = 0
    is_overview: bool = False
    dirty: bool = Field(False, description="Sizes may include bytes deleted since capture")

    @classmethod
    def from_result(cls, path: str, result: ScanResult) -> "HistoryFrame":
        """Build a fresh frame (cursor at the top) from a scan result."""
        return cls(
            path=path,
            entries=result.entries,
            large_files=result.large_files,
            total_size=result.total_size,
            total_files=result.total_files,
        )
