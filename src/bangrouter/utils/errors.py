"""
Error handling framework for bangrouter.

This module provides:
- Hierarchical exception classes
- Error context preservation
- User-friendly resolution suggestions
- Structured error responses
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    STORAGE = "storage"
    USER_INPUT = "user_input"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    component: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class BangError(Exception):
    """Base exception for all bangrouter errors."""

    code: str = "BANG_ERROR"
    default_message: str = "An error occurred in bangrouter"
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        """Initialize bangrouter error."""
        self.message = message or self.default_message
        self.context = context or ErrorContext()
        self.cause = cause
        super().__init__(self.message)

    def get_suggestions(self) -> List[str]:
        """Get error resolution suggestions."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "category": self.category.value,
                "suggestions": self.get_suggestions(),
                "context": {
                    "timestamp": self.context.timestamp.isoformat(),
                    "component": self.context.component,
                    "operation": self.context.operation,
                    "metadata": self.context.metadata
                }
            }
        }


class ConfigurationError(BangError):
    """Configuration errors."""
    code = "CONFIG_ERROR"
    default_message = "Configuration error"
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.ERROR

    def get_suggestions(self) -> List[str]:
        return [
            "Check your configuration file syntax",
            "Ensure all required configuration values are set",
            "Copy commands.json.sample to commands.json and customize it",
        ]


class TemplateError(ConfigurationError):
    """A configured URL template could not be rendered."""
    code = "TEMPLATE_ERROR"
    default_message = "Failed to render URL template"

    def __init__(self, template: str, reason: str, **kwargs):
        self.template = template
        self.reason = reason
        super().__init__(f"Failed to render URL template {template!r}: {reason}", **kwargs)

    def get_suggestions(self) -> List[str]:
        return [
            "Use {{query}} as the only placeholder in command URLs",
            "Check the url field of the command in your commands file",
        ]


class ValidationError(BangError):
    """Input validation errors."""
    code = "VALIDATION_ERROR"
    default_message = "Validation error"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING

    def __init__(self, field: str, value: Any, constraint: str, **kwargs):
        self.field = field
        self.value = value
        self.constraint = constraint
        message = f"Validation failed for field '{field}': {constraint}"
        super().__init__(message, **kwargs)

    def get_suggestions(self) -> List[str]:
        return [
            f"Check the value of field '{self.field}'",
            f"Ensure it meets the constraint: {self.constraint}"
        ]


class DateParseError(ValidationError):
    """A date argument is not a valid YYYY-MM-DD calendar date."""
    code = "DATE_PARSE_ERROR"
    category = ErrorCategory.USER_INPUT

    def __init__(self, field: str, value: Any, **kwargs):
        super().__init__(field, value, f"'{value}' is not a valid YYYY-MM-DD date", **kwargs)


class StorageError(BangError):
    """Usage log could not be read."""
    code = "STORAGE_ERROR"
    default_message = "Usage log could not be read"
    category = ErrorCategory.STORAGE
    severity = ErrorSeverity.ERROR

    def get_suggestions(self) -> List[str]:
        return [
            "Verify the usage log path is a readable file",
            "Check file permissions of the usage log",
        ]


__all__ = [
    'BangError',
    'ErrorContext',
    'ErrorSeverity',
    'ErrorCategory',
    'ConfigurationError',
    'TemplateError',
    'ValidationError',
    'DateParseError',
    'StorageError',
]
