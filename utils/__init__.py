"""
Utils package for shared utilities and cross-cutting concerns.

This package contains the error taxonomy, decorators, logging utilities,
response formatters, keyed locks and PIN security helpers.
"""

from .decorators import (extract_path_params, lambda_handler, require_auth,
                         require_permission, validate_json_body)
from .errors import (AuthenticationError, ConflictError, LootTrackerError,
                     NotFoundError, PermissionDeniedError, ValidationError)
from .locks import KeyedLocks
from .logging import (log_error, log_lambda_event, log_lambda_response,
                      setup_logger)
from .responses import (HTTPStatus, domain_error_response, error_response,
                        forbidden_response, success_response,
                        unauthorized_response, validation_error_response)
from .security import hash_pin, is_valid_pin, verify_pin

__all__ = [
    # Errors
    "LootTrackerError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "AuthenticationError",
    "PermissionDeniedError",
    # Decorators
    "lambda_handler",
    "require_auth",
    "require_permission",
    "validate_json_body",
    "extract_path_params",
    # Logging
    "setup_logger",
    "log_lambda_event",
    "log_lambda_response",
    "log_error",
    # Responses
    "HTTPStatus",
    "success_response",
    "error_response",
    "validation_error_response",
    "unauthorized_response",
    "forbidden_response",
    "domain_error_response",
    # Concurrency
    "KeyedLocks",
    # Security
    "hash_pin",
    "verify_pin",
    "is_valid_pin",
]
