from .errors import (
    RegexToolError,
    InvalidPatternError,
    NoCaptureGroupsError,
    FileAccessError,
    NotFoundError,
    PermissionDeniedError,
    OperationTimeoutError,
)
from .regex import (
    OperationKind,
    PatternSpec,
    RegexMatch,
    Position,
    ContextWindow,
    OperationParams,
    ResultItem,
    SearchMatch,
    Replacement,
    Extraction,
    MatchedLine,
    Segment,
    FileResult,
    AggregateResult,
)
from .setting import Settings, get_settings, reload_settings

__all__ = [
    # Errors
    "RegexToolError", "InvalidPatternError", "NoCaptureGroupsError", "FileAccessError",
    "NotFoundError", "PermissionDeniedError", "OperationTimeoutError",
    # Pattern & match
    "OperationKind", "PatternSpec", "RegexMatch", "Position", "ContextWindow", "OperationParams",
    # Result records
    "ResultItem", "SearchMatch", "Replacement", "Extraction", "MatchedLine", "Segment",
    "FileResult", "AggregateResult",
    # Settings
    "Settings", "get_settings", "reload_settings",
]
