# Core module initialization
# Configuration, logging, errors and retry plumbing shared by every service

from .config import Settings, LowConfidencePolicy, get_settings
from .exceptions import (
    AppException,
    ErrorType,
    ConfigurationError,
    FileProcessingError,
    ProviderError,
    AllProvidersFailedError,
    StorageWriteError,
    MessageSourceError,
)
from .logging import setup_logging, PerformanceLogger
from .retry import Deadline, RetryPolicy, RetryOutcome, call_with_retry

__all__ = [
    # Config
    'Settings',
    'LowConfidencePolicy',
    'get_settings',

    # Exceptions
    'AppException',
    'ErrorType',
    'ConfigurationError',
    'FileProcessingError',
    'ProviderError',
    'AllProvidersFailedError',
    'StorageWriteError',
    'MessageSourceError',

    # Logging
    'setup_logging',
    'PerformanceLogger',

    # Retry
    'Deadline',
    'RetryPolicy',
    'RetryOutcome',
    'call_with_retry',
]
