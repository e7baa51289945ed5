"""Result types for pull, push and stream runs.

Every run returns one of these, even when every file failed, so callers
can render partial success. Per-file and per-destination problems are
collected in `errors` as human-readable strings prefixed by the step that
failed ("pull", "record", "push", ...).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mediaferry.core.types import FileSyncState

UNREACHABLE_ERROR = "destination unreachable"
NO_REACHABLE_DESTINATIONS_ERROR = "no destinations are reachable"


@dataclass
class PullResult:
    """Result of pulling one source."""

    source: str
    pulled: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if any step failed."""
        return len(self.errors) > 0


@dataclass
class PushResult:
    """Result of pushing to one destination."""

    destination: str
    pushed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if any upload failed."""
        return len(self.errors) > 0


@dataclass
class StreamResult:
    """Result of streaming one source.

    Attributes:
        source: Source identity.
        streamed: Files pulled and pushed during this run.
        skipped: Files already pulled before this run.
        resumed: Previously retained files pushed again during this run.
        deleted: Staged copies removed after a complete push.
        retained: Staged copies kept because a push did not complete.
        errors: Collected error messages.
        outcomes: Terminal state per source path.
    """

    source: str
    streamed: int = 0
    skipped: int = 0
    resumed: int = 0
    deleted: int = 0
    retained: int = 0
    errors: list[str] = field(default_factory=list)
    outcomes: dict[str, FileSyncState] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        """Check if any step failed."""
        return len(self.errors) > 0
