"""
Decorators for Lambda function handlers.

This module provides decorators that add consistent logging, error handling,
authentication and response formatting to Lambda functions.
"""

import json
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

import pydantic

from .errors import LootTrackerError
from .logging import (log_error, log_lambda_event, log_lambda_response,
                      setup_logger)
from .responses import (HTTPStatus, domain_error_response, error_response,
                        forbidden_response, unauthorized_response,
                        validation_error_response)


def lambda_handler(
    logger_name: Optional[str] = None,
    log_event: bool = True,
    log_response: bool = True,
    structured_logging: bool = True,
) -> Callable:
    """
    Decorator for Lambda function handlers that provides:
    - Consistent logging setup
    - Automatic event/response logging
    - Mapping of domain and validation errors onto 4xx responses
    - Execution time tracking

    Args:
        logger_name: Logger name (defaults to function module name)
        log_event: Whether to log incoming events
        log_response: Whether to log responses
        structured_logging: Whether to use structured JSON logging

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            logger = setup_logger(
                logger_name or func.__module__, structured=structured_logging
            )

            start_time = time.time()

            try:
                if log_event:
                    log_lambda_event(logger, event, context)

                try:
                    response = func(event, context)
                except LootTrackerError as e:
                    logger.info(
                        f"Request rejected: {e.message}",
                        extra={"error_code": e.error_code},
                    )
                    response = domain_error_response(e)
                except pydantic.ValidationError as e:
                    response = validation_error_response(
                        "Invalid request", {"errors": json.loads(e.json(include_url=False))}
                    )

                if not isinstance(response, dict) or "statusCode" not in response:
                    logger.warning("Handler returned invalid response format")
                    response = error_response(
                        "Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR
                    )

                if log_response:
                    execution_time = (time.time() - start_time) * 1000
                    log_lambda_response(logger, response, execution_time)

                return response

            except Exception as e:
                execution_time = (time.time() - start_time) * 1000

                log_error(
                    logger,
                    e,
                    {
                        "function_name": getattr(context, "function_name", "unknown"),
                        "request_id": getattr(context, "aws_request_id", "unknown"),
                        "execution_time_ms": execution_time,
                        "event_path": event.get("path") or event.get("rawPath"),
                        "event_method": event.get("httpMethod")
                        or event.get("requestContext", {})
                        .get("http", {})
                        .get("method"),
                    },
                )

                return error_response(
                    "Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR
                )

        return wrapper

    return decorator


def require_auth(func: Callable) -> Callable:
    """
    Decorator that ensures the request belongs to a roster member.

    The member id comes from the API Gateway authorizer context when present;
    otherwise the bearer token in the Authorization header is resolved
    directly. The member is placed on ``event["member"]``.

    Args:
        func: Function to decorate

    Returns:
        Decorated function
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        from services.auth import bearer_token
        from services.container import get_tracker

        tracker = get_tracker()

        # HTTP APIs nest the context under "lambda", REST APIs do not
        authorizer_context = event.get("requestContext", {}).get("authorizer") or {}
        auth_context = authorizer_context.get("lambda", authorizer_context)

        member = None
        member_id = auth_context.get("memberId") if auth_context else None
        if member_id:
            member = tracker.store.get_member(member_id)
        else:
            member = tracker.auth.resolve(bearer_token(event.get("headers")))

        if member is None:
            logger = setup_logger(__name__)
            logger.info(
                "Authorization failed - no valid session found",
                extra={"authorizer_keys": list(authorizer_context.keys())},
            )
            return unauthorized_response()

        event["member"] = member
        event["auth"] = {"member_id": member.member_id, "member_name": member.name}

        return func(event, context)

    return wrapper


def require_permission(
    check: Callable[..., bool], action: str, with_path_params: bool = False
) -> Callable:
    """
    Decorator that gates a handler on a permission rule.

    Must sit below ``require_auth``. ``check`` receives the authenticated
    member, plus the extracted path parameters as keywords when
    ``with_path_params`` is set.

    Args:
        check: Rule from ``services.permissions``
        action: Phrase used in the 403 message
        with_path_params: Whether the rule takes the path parameters

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            member = event.get("member")
            if member is None:
                return unauthorized_response()
            params = event.get("path_params", {}) if with_path_params else {}
            if not check(member, **params):
                return forbidden_response(f"You do not have permission to {action}")
            return func(event, context)

        return wrapper

    return decorator


def validate_json_body(required_fields: Optional[list] = None) -> Callable:
    """
    Decorator that validates and parses JSON request body.

    Args:
        required_fields: List of required field names

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            try:
                body = json.loads(event.get("body") or "{}")
            except json.JSONDecodeError as e:
                return validation_error_response(
                    "Invalid JSON in request body", {"json_error": str(e)}
                )

            if not isinstance(body, dict):
                return validation_error_response("Request body must be a JSON object")
            event["json_body"] = body

            if required_fields:
                missing_fields = [
                    field
                    for field in required_fields
                    if field not in body or body[field] is None
                ]
                if missing_fields:
                    return validation_error_response(
                        f"Missing required fields: {', '.join(missing_fields)}",
                        {"missing_fields": missing_fields},
                    )

            return func(event, context)

        return wrapper

    return decorator


def extract_path_params(*param_names: str) -> Callable:
    """
    Decorator that extracts and validates path parameters.

    Args:
        param_names: Names of path parameters to extract

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            path_params = event.get("pathParameters") or {}

            missing_params = [
                param
                for param in param_names
                if param not in path_params or not path_params[param]
            ]

            if missing_params:
                return validation_error_response(
                    f"Missing path parameters: {', '.join(missing_params)}",
                    {"missing_parameters": missing_params},
                )

            event["path_params"] = {param: path_params[param] for param in param_names}

            return func(event, context)

        return wrapper

    return decorator
