"""
Error taxonomy for configsync.

Every error carries a structured code, a human-readable message, an optional
recovery suggestion and a context dictionary for debugging.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """
    Error codes for configsync.

    - 1000: Generic failure
    - 1001-1099: Document load/save errors
    """

    INTERNAL_ERROR = 1000
    UNSUPPORTED_FORMAT = 1001
    FILE_NOT_FOUND = 1002
    PARSE_ERROR = 1003
    INVALID_PATH = 1004
    SAVE_FAILED = 1005
    READ_FAILED = 1006


class ConfigSyncError(Exception):
    """Base exception for configsync errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configsync error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to a plain dictionary.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class UnsupportedFormatError(ConfigSyncError):
    """File extension does not map to a known format."""

    def __init__(self, file_path: str, extension: str):
        super().__init__(
            code=ErrorCode.UNSUPPORTED_FORMAT,
            message=f"Unsupported config file extension: {extension or '(none)'}",
            suggestion="Use one of .json, .ini, .xml or .csv",
            context={"file_path": file_path, "extension": extension}
        )


class ConfigFileNotFoundError(ConfigSyncError, FileNotFoundError):
    """Load target does not exist."""

    def __init__(self, file_path: str):
        super().__init__(
            code=ErrorCode.FILE_NOT_FOUND,
            message=f"Config file does not exist: {file_path}",
            suggestion="Check the path or create the file first",
            context={"file_path": file_path}
        )


class ParseError(ConfigSyncError):
    """Content violates the grammar of its format."""

    def __init__(
        self,
        format_name: str,
        reason: str,
        file_path: Optional[str] = None,
        line_number: Optional[int] = None
    ):
        """
        Initialize parse error.

        Args:
            format_name: Format being decoded (json, ini, xml, csv)
            reason: Parser message
            file_path: File where error occurred, when known
            line_number: Line number of error, when the parser reports one
        """
        context: Dict[str, Any] = {"format": format_name, "reason": reason}
        if file_path:
            context["file_path"] = file_path
        if line_number:
            context["line_number"] = line_number

        super().__init__(
            code=ErrorCode.PARSE_ERROR,
            message=f"Invalid {format_name} content: {reason}",
            suggestion="Check file syntax",
            context=context
        )

    def with_file(self, file_path: str) -> "ParseError":
        """Return a copy of this error that names the file being loaded."""
        return ParseError(
            self.context["format"],
            self.context["reason"],
            file_path=file_path,
            line_number=self.context.get("line_number")
        )


class ReadError(ConfigSyncError):
    """Existing file cannot be read (permissions, I/O failure)."""

    def __init__(self, reason: str, file_path: str):
        super().__init__(
            code=ErrorCode.READ_FAILED,
            message=f"Failed to read configuration from {file_path}: {reason}",
            suggestion="Check file permissions",
            context={"reason": reason, "file_path": file_path}
        )


class PathError(ConfigSyncError):
    """Malformed path expression."""

    def __init__(self, path: str, reason: str, position: Optional[int] = None):
        context: Dict[str, Any] = {"path": path, "reason": reason}
        if position is not None:
            context["position"] = position

        super().__init__(
            code=ErrorCode.INVALID_PATH,
            message=f"Invalid path expression {path!r}: {reason}",
            suggestion="Use dotted keys and bracketed indices, e.g. a.b[0].c",
            context=context
        )


class SaveError(ConfigSyncError):
    """Document cannot be written to its target."""

    def __init__(self, reason: str, file_path: Optional[str] = None, suggestion: Optional[str] = None):
        context: Dict[str, Any] = {"reason": reason}
        if file_path:
            context["file_path"] = file_path

        message = f"Failed to save configuration to {file_path}: {reason}" if file_path \
            else f"Failed to save configuration: {reason}"

        super().__init__(
            code=ErrorCode.SAVE_FAILED,
            message=message,
            suggestion=suggestion,
            context=context
        )


def error_response(error: Exception) -> Dict[str, Any]:
    """
    Convert any exception into the structured error dictionary.

    Args:
        error: Exception to convert

    Returns:
        Error dictionary
    """
    if isinstance(error, ConfigSyncError):
        return error.to_dict()

    return {
        "code": ErrorCode.INTERNAL_ERROR.value,
        "message": str(error),
        "suggestion": "Check logs for details"
    }
