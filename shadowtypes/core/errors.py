"""
Error taxonomy for the shadow-type engine.

Two errors are fatal (``CorpusUnavailable``, ``ThresholdMisconfigured``) and
abort a run. The other two are recovered inside the extractor and end up as
``SkippedItem`` records in the report. Violations are never errors.
"""

from typing import Optional, Any, Dict


class ShadowTypesError(Exception):
    """
    Base exception for all engine errors.

    Carries a ``details`` mapping so callers can render structured context.
    """

    fatal = True

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize engine error.

        Args:
            message: Error message
            details: Optional detailed error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CorpusUnavailable(ShadowTypesError):
    """Raised when the corpus root is missing or cannot be listed."""

    def __init__(self, message: str, root: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.root = root
        self.details.update({'root': root})


class ThresholdMisconfigured(ShadowTypesError):
    """
    Raised at configuration-validation time, before any extraction runs.

    Covers thresholds outside [0, 1], negative floors, unknown concept or
    severity names and whitelist entries that cannot be accepted.
    """

    def __init__(self, message: str, setting: Optional[str] = None,
                 value: Any = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.setting = setting
        self.value = value
        self.details.update({'setting': setting, 'value': value})


class FileUnreadable(ShadowTypesError):
    """A single file is locked, corrupted, undecodable or failed to parse."""

    fatal = False

    def __init__(self, message: str, file_path: Optional[str] = None,
                 line_number: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.file_path = file_path
        self.line_number = line_number
        self.details.update({'file_path': file_path, 'line_number': line_number})


class DeclarationAmbiguous(ShadowTypesError):
    """The parser cannot confidently classify one construct."""

    fatal = False

    def __init__(self, message: str, file_path: Optional[str] = None,
                 symbol: Optional[str] = None, line_number: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.file_path = file_path
        self.symbol = symbol
        self.line_number = line_number
        self.details.update({
            'file_path': file_path,
            'symbol': symbol,
            'line_number': line_number,
        })
