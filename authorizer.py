"""
Session token authorizer for API Gateway.

Validates the bearer session token issued by ``POST /auth/login`` and
passes the member's id, name and permission role on to the handlers.
"""

from typing import Any, Dict

from services.auth import bearer_token
from services.container import get_tracker
from utils.logging import log_error, setup_logger

logger = setup_logger(__name__)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    HTTP API Gateway Lambda Authorizer.

    The authorizer response is cached by API Gateway, so the context only
    carries identifiers; handlers reload the member for permission checks.

    Args:
        event: API Gateway authorizer event
        context: Lambda context object

    Returns:
        Authorization response for API Gateway
    """
    logger.info(
        "Authorization request received",
        extra={
            "request_id": getattr(context, "aws_request_id", "unknown"),
            "method": event.get("requestContext", {}).get("http", {}).get("method"),
            "path": event.get("rawPath"),
        },
    )

    try:
        token = bearer_token(event.get("headers"))
        if token is None:
            logger.warning("Authorization failed: no bearer token in request.")
            return {"isAuthorized": False}

        member = get_tracker().auth.resolve(token)
        if member is None:
            logger.warning("Authorization failed: session token rejected.")
            return {"isAuthorized": False}

        logger.info(
            "Member authorized successfully",
            extra={"member_id": member.member_id},
        )

        return {
            "isAuthorized": True,
            "context": {
                "principalId": member.member_id,
                "memberId": member.member_id,
                "memberName": member.name,
                "permissionRole": member.permission_role.value,
            },
        }

    except Exception as e:
        log_error(
            logger,
            e,
            {
                "event_path": event.get("rawPath"),
                "event_method": event.get("requestContext", {})
                .get("http", {})
                .get("method"),
            },
        )
        return {"isAuthorized": False}
