"""
Handlers package for Lambda function handlers.

This package contains the API endpoint handlers for authentication, roster
members, BiS sets, raid weeks, loot distribution and loot history.
"""

from . import auth, bis, history, loot, members, weeks

__all__ = ["auth", "bis", "history", "loot", "members", "weeks"]
