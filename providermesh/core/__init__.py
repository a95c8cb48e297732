"""Ambient concerns: settings, logging and the error taxonomy."""

from .config import Settings, settings
from .errors import (
    DuplicateProviderError,
    ErrorInfo,
    InvalidConfigError,
    InvalidPromptError,
    InvalidStateTransitionError,
    InvocationCancelledError,
    InvocationTimeoutError,
    ProviderInvocationError,
    ProviderMeshError,
    ProviderUnavailableError,
    UnknownModelError,
    UnknownOperationError,
    UnknownProviderError,
    UnsupportedFeatureError,
    UnsupportedInvocationError,
    error_from_info,
)
from .logging_config import get_logger, setup_logging

__all__ = [
    "DuplicateProviderError",
    "ErrorInfo",
    "InvalidConfigError",
    "InvalidPromptError",
    "InvalidStateTransitionError",
    "InvocationCancelledError",
    "InvocationTimeoutError",
    "ProviderInvocationError",
    "ProviderMeshError",
    "ProviderUnavailableError",
    "Settings",
    "UnknownModelError",
    "UnknownOperationError",
    "UnknownProviderError",
    "UnsupportedFeatureError",
    "UnsupportedInvocationError",
    "error_from_info",
    "get_logger",
    "settings",
    "setup_logging",
]
