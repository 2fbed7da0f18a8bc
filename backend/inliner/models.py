"""
Data types passed between the orchestrator, the document passes and the API.
"""

from dataclasses import dataclass
from enum import Enum


class Stage(str, Enum):
    """Pipeline states, in the order a successful run visits them."""

    IDLE = "idle"
    FETCHING_MAIN = "fetching_main"
    MAIN_FAILED = "main_failed"
    TRANSFORMING = "transforming"
    FETCHING_STYLESHEETS = "fetching_stylesheets"
    ASSEMBLING = "assembling"
    DONE = "done"


class StylesheetOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    ABANDONED = "abandoned"


@dataclass
class StylesheetResult:
    """What a single stylesheet fetch hands back to the coordinator."""

    url: str
    outcome: StylesheetOutcome
    css: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is StylesheetOutcome.SUCCEEDED


@dataclass
class InlineResult:
    html: str
    url: str
    base_url: str
    title: str | None
    final_url: str | None = None
    stylesheets_inlined: int = 0
    stylesheets_failed: int = 0
    stylesheets_abandoned: int = 0
    elapsed: float = 0.0

    @property
    def size(self) -> int:
        return len(self.html.encode("utf-8"))


class MainFetchError(RuntimeError):
    """The page itself could not be fetched; nothing is returned."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
