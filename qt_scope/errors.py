"""Error and notice types for SCOPE job telemetry analysis.

Only malformed XML is fatal, and only for the document it came from.
Everything else the analysis runs into (missing attributes, empty vertex
sets, operators without a plan entry) is reported as an
``AnalysisNotice`` on the result and logged.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ScopeAnalysisError(Exception):
    """Base class for qt-scope errors."""


class MalformedDocument(ScopeAnalysisError):
    """Raised when a telemetry document is not well-formed XML."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Malformed document {source}: {reason}")


class NoticeKind(Enum):
    MALFORMED_DOCUMENT = "malformed_document"
    MISSING_OPTIONAL_DATA = "missing_optional_data"
    EMPTY_DATASET = "empty_dataset"
    UNRESOLVED_CORRELATION = "unresolved_correlation"


@dataclass
class AnalysisNotice:
    """Non-fatal condition found while analyzing a job."""
    kind: str
    message: str
    count: int = 0
    source: Optional[str] = None
