"""Core package - shared configuration, errors and logging."""

from .config import Settings, get_settings
from .errors import (
    VerdictError,
    CompileError,
    RuleDefinitionError,
    ValidationError,
    AsyncActionMisuseError,
    RuleActionError,
    OperatorRegistrationError,
    OperatorLookupError,
    FieldPathError,
    RulesetNotFoundError,
    RuleLoadError,
)
from .logging import configure_logging, get_logger

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "VerdictError",
    "CompileError",
    "RuleDefinitionError",
    "ValidationError",
    "AsyncActionMisuseError",
    "RuleActionError",
    "OperatorRegistrationError",
    "OperatorLookupError",
    "FieldPathError",
    "RulesetNotFoundError",
    "RuleLoadError",
    # Logging
    "configure_logging",
    "get_logger",
]
