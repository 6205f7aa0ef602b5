"""Error taxonomy for the value-bet discovery pipeline."""
from typing import Optional


class ScoutBetError(Exception):
    """Base class for all ScoutBet errors."""


class ConfigurationError(ScoutBetError):
    """A collaborator is missing credentials or an endpoint."""

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class QuotaExceededError(ScoutBetError):
    """The extraction service reported a plan or quota limit (HTTP 402)."""


class ExtractionError(ScoutBetError):
    """A single source could not be navigated or extracted."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class ScoringError(ScoutBetError):
    """An opportunity could not be scored."""


class LinkGenerationError(ScoutBetError):
    """Bookmaker links could not be built for an opportunity."""


class LLMError(ScoutBetError):
    """The LLM completion service failed or returned an unusable response."""


class PipelineError(ScoutBetError):
    """Unrecoverable discovery failure, surfaced as ``success=False``."""
