"""
Health check endpoint for the raid loot tracker API.

This module provides a simple health check endpoint that can be used
for monitoring and load balancer health checks.
"""

from services.parameter_store import config
from utils.decorators import lambda_handler
from utils.responses import success_response


@lambda_handler(log_event=False)
def healthz(event, context):
    """
    Health check endpoint for the raid loot tracker API.

    Does not require authentication and does not touch storage.

    Args:
        event: Lambda event object
        context: Lambda context object

    Returns:
        HTTP response indicating service health
    """
    return success_response(
        data={
            "status": "healthy",
            "service": "raid-loot-tracker-api",
            "storage_backend": config.storage_backend,
        },
        message="Service is running",
    )
