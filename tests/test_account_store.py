"""Tests for the credential store (AccountStore over DBStorage)."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from models.user import Role, Status


class TestLookup:

    def test_find_by_username(self, ctx, alice):
        assert ctx.accounts.find_by_identifier("alice").id == alice.id

    def test_find_by_email_is_case_insensitive(self, ctx, alice):
        assert ctx.accounts.find_by_identifier("  ALICE@Example.com ").id == alice.id

    def test_unknown_identifier(self, ctx, alice):
        assert ctx.accounts.find_by_identifier("bob") is None
        assert ctx.accounts.find_by_identifier("") is None

    def test_get(self, ctx, alice):
        assert ctx.accounts.get(alice.id).username == "alice"
        assert ctx.accounts.get("missing") is None
        assert ctx.accounts.get(None) is None


class TestCreate:

    def test_new_account_defaults(self, ctx, alice):
        user = ctx.accounts.get(alice.id)
        assert user.refresh_version == 0
        assert user.refresh_token_hash is None
        assert user.last_login_at is None
        assert user.status == Status.ACTIVE
        assert user.role == Role.USER

    def test_duplicate_username_rejected(self, ctx, make_user):
        make_user("alice")
        with pytest.raises(IntegrityError):
            make_user("alice", email="other@example.com")

    def test_password_is_write_only(self, alice):
        with pytest.raises(AttributeError):
            alice.password

    def test_to_dict_hides_credentials(self, ctx, alice):
        ctx.accounts.record_login(alice.id, "f" * 64, datetime.now(timezone.utc))
        d = ctx.accounts.get(alice.id).to_dict()
        assert "password_hash" not in d
        assert "refresh_token_hash" not in d
        assert d["username"] == "alice"


class TestCredentialWrites:

    def test_record_login_writes_fingerprint_and_timestamp(self, ctx, alice):
        when = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert ctx.accounts.record_login(alice.id, "a" * 64, when) is True
        user = ctx.accounts.get(alice.id)
        assert user.refresh_token_hash == "a" * 64
        assert user.last_login_at.replace(tzinfo=None) == when.replace(tzinfo=None)

    def test_update_unknown_account(self, ctx):
        assert ctx.accounts.update("missing", refresh_token_hash=None) is False

    def test_clear_refresh_token(self, ctx, alice):
        ctx.accounts.update(alice.id, refresh_token_hash="a" * 64)
        ctx.accounts.clear_refresh_token(alice.id)
        assert ctx.accounts.get(alice.id).refresh_token_hash is None

    def test_bump_refresh_version(self, ctx, alice):
        ctx.accounts.update(alice.id, refresh_token_hash="a" * 64)
        ctx.accounts.bump_refresh_version(alice.id)
        ctx.accounts.bump_refresh_version(alice.id)
        user = ctx.accounts.get(alice.id)
        assert user.refresh_version == 2
        assert user.refresh_token_hash is None

    def test_bump_with_extra_fields(self, ctx, alice):
        ctx.accounts.bump_refresh_version(alice.id, status=Status.DELETED)
        user = ctx.accounts.get(alice.id)
        assert user.status == Status.DELETED
        assert user.refresh_version == 1

    def test_rotate_only_from_current_fingerprint(self, ctx, alice):
        ctx.accounts.update(alice.id, refresh_token_hash="a" * 64)
        assert ctx.accounts.rotate_refresh_token(alice.id, "a" * 64, "b" * 64) is True
        assert ctx.accounts.rotate_refresh_token(alice.id, "a" * 64, "c" * 64) is False
        assert ctx.accounts.get(alice.id).refresh_token_hash == "b" * 64


class TestListing:

    def test_list_skips_deleted(self, ctx, make_user):
        make_user("alice")
        bob = make_user("bob")
        ctx.accounts.update(bob.id, status=Status.DELETED)
        assert [u.username for u in ctx.accounts.list()] == ["alice"]
        assert len(ctx.accounts.list(include_deleted=True)) == 2

    def test_exists(self, ctx, alice):
        assert ctx.accounts.exists(username="alice")
        assert ctx.accounts.exists(email="ALICE@example.com")
        assert not ctx.accounts.exists(username="alice", exclude_id=alice.id)
        assert not ctx.accounts.exists()


class TestAccountStatus:

    @pytest.mark.parametrize("status, active", [
        (Status.ACTIVE, True),
        (Status.INACTIVE, False),
        (Status.DELETED, False),
    ])
    def test_is_active(self, make_user, status, active):
        assert make_user("erin", status=status).is_active is active
