"""
PIN login and session tokens.

Sessions are HS256 JWTs whose subject is the member id. A token is only
honored while its member still exists.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt

from models.members import MemberBase
from services.members import MemberDirectory
from utils.errors import AuthenticationError, NotFoundError, ValidationError
from utils.security import hash_pin, is_valid_pin, verify_pin

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class PinAuthenticator:
    def __init__(
        self,
        members: MemberDirectory,
        secret: str,
        ttl_hours: int = 24,
    ):
        if not secret:
            raise ValueError("A session secret is required")
        self.members = members
        self.secret = secret
        self.ttl = timedelta(hours=ttl_hours)

    def login(self, name: str, pin: str) -> Tuple[str, MemberBase]:
        """
        Exchange a member name and PIN for a session token.

        Args:
            name: Member name, matched case-insensitively
            pin: Four digit PIN

        Returns:
            Tuple of (token, member)

        Raises:
            AuthenticationError: Unknown name or wrong PIN
        """
        member = self.members.find_by_name(name or "")
        if member is None or not verify_pin(str(pin or ""), member.pin_hash):
            logger.info("Login rejected", extra={"member_name": name})
            raise AuthenticationError("Invalid name or PIN")

        logger.info("Login succeeded", extra={"member_id": member.member_id})
        return self.issue_token(member), member

    def issue_token(self, member: MemberBase) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": member.member_id,
            "name": member.name,
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def resolve(self, token: Optional[str]) -> Optional[MemberBase]:
        """The member a token belongs to, or None if it is expired, malformed or orphaned."""
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Session token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid session token: {e}")
            return None

        try:
            return self.members.get(claims["sub"])
        except NotFoundError:
            return None

    def change_pin(self, member_id: str, current_pin: str, new_pin: str) -> MemberBase:
        """
        Replace a member's PIN.

        Raises:
            AuthenticationError: The current PIN is wrong
            ValidationError: The new PIN is not exactly four digits
        """
        member = self.members.get(member_id)
        if not verify_pin(str(current_pin or ""), member.pin_hash):
            raise AuthenticationError("Current PIN is incorrect")
        if not is_valid_pin(new_pin):
            raise ValidationError("PIN must be exactly 4 digits")

        updated = self.members.set_pin_hash(member_id, hash_pin(new_pin))
        logger.info("PIN changed", extra={"member_id": member_id})
        return updated


def bearer_token(headers: Optional[dict]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not headers:
        return None
    value = headers.get("authorization") or headers.get("Authorization") or ""
    scheme, _, token = value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
