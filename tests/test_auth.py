"""
Tests for PIN login, session tokens and permission rules.
"""

import jwt
import pytest

from models.enums import PermissionRole
from services import permissions
from services.auth import PinAuthenticator, bearer_token
from utils.errors import AuthenticationError, PermissionDeniedError, ValidationError
from utils.security import DEFAULT_PIN, hash_pin, is_valid_pin, verify_pin


class TestPinHashing:
    def test_round_trip_and_salt(self):
        first, second = hash_pin("1234"), hash_pin("1234")

        assert first != second
        assert verify_pin("1234", first)
        assert not verify_pin("4321", first)

    def test_malformed_hash(self):
        assert not verify_pin("1234", "not-a-hash")

    @pytest.mark.parametrize(
        "pin,valid",
        [
            ("0000", True),
            ("123", False),
            ("12a4", False),
            (1234, False),
            ("1234\n", False),
            ("\u0661\u0662\u0663\u0664", False),
        ],
    )
    def test_pin_format(self, pin, valid):
        assert is_valid_pin(pin) is valid


class TestLogin:
    def test_default_pin(self, tracker, alice):
        token, member = tracker.auth.login("alice", DEFAULT_PIN)

        assert member.member_id == alice.member_id
        assert tracker.auth.resolve(token).member_id == alice.member_id

    def test_wrong_pin(self, tracker, alice):
        with pytest.raises(AuthenticationError):
            tracker.auth.login("Alice", "0000")

    def test_unknown_name(self, tracker):
        with pytest.raises(AuthenticationError):
            tracker.auth.login("Nobody", DEFAULT_PIN)


class TestTokens:
    def test_expired(self, tracker, alice):
        expired = PinAuthenticator(tracker.members, "test-session-secret", ttl_hours=-1)
        token = expired.issue_token(alice)

        assert tracker.auth.resolve(token) is None

    def test_wrong_secret(self, tracker, alice):
        other = PinAuthenticator(tracker.members, "another-secret")
        assert tracker.auth.resolve(other.issue_token(alice)) is None

    def test_garbage(self, tracker):
        assert tracker.auth.resolve("not.a.token") is None
        assert tracker.auth.resolve(None) is None

    def test_deleted_member(self, tracker, alice):
        token = tracker.auth.issue_token(alice)
        tracker.members.delete(alice.member_id)

        assert tracker.auth.resolve(token) is None

    def test_claims(self, tracker, alice):
        claims = jwt.decode(
            tracker.auth.issue_token(alice), "test-session-secret", algorithms=["HS256"]
        )
        assert claims["sub"] == alice.member_id
        assert claims["name"] == "Alice"

    def test_secret_required(self, tracker):
        with pytest.raises(ValueError):
            PinAuthenticator(tracker.members, "")

    @pytest.mark.parametrize(
        "headers,expected",
        [
            ({"authorization": "Bearer abc"}, "abc"),
            ({"Authorization": "bearer  abc "}, "abc"),
            ({"authorization": "Basic abc"}, None),
            ({"authorization": "Bearer "}, None),
            ({}, None),
            (None, None),
        ],
    )
    def test_bearer_token(self, headers, expected):
        assert bearer_token(headers) == expected


class TestChangePin:
    def test_change(self, tracker, alice):
        tracker.auth.change_pin(alice.member_id, DEFAULT_PIN, "2580")

        tracker.auth.login("Alice", "2580")
        with pytest.raises(AuthenticationError):
            tracker.auth.login("Alice", DEFAULT_PIN)

    def test_wrong_current_pin(self, tracker, alice):
        with pytest.raises(AuthenticationError):
            tracker.auth.change_pin(alice.member_id, "9999", "2580")

    def test_new_pin_format(self, tracker, alice):
        with pytest.raises(ValidationError):
            tracker.auth.change_pin(alice.member_id, DEFAULT_PIN, "25")


class TestPermissions:
    def test_matrix(self, alice, manager, admin):
        assert not permissions.can_manage_loot(alice)
        assert permissions.can_manage_loot(manager)
        assert permissions.can_manage_loot(admin)

        assert permissions.can_create_week(manager)
        assert not permissions.can_delete_week(manager)
        assert permissions.can_delete_week(admin)

        assert not permissions.can_change_permissions(manager)
        assert permissions.can_change_permissions(admin)

        assert permissions.can_create_member(manager)
        assert not permissions.can_delete_member(manager)

    def test_members_edit_themselves(self, alice, bob, manager):
        assert permissions.can_edit_bis(alice, alice.member_id)
        assert not permissions.can_edit_bis(alice, bob.member_id)
        assert permissions.can_edit_member(manager, bob.member_id)

    def test_ensure(self, alice):
        permissions.ensure(True, "look around")
        with pytest.raises(PermissionDeniedError):
            permissions.ensure(permissions.is_administrator(alice), "delete weeks")

    def test_has_role(self, manager):
        assert permissions.has_role(manager, PermissionRole.USER)
        assert not permissions.has_role(manager, PermissionRole.ADMINISTRATOR)
