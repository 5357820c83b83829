"""
AccountStore: the credential store.

Every credential write (fingerprint, epoch, password hash, last login) is a
single UPDATE statement committed on its own, so concurrent logins resolve
last-writer-wins and a write never lands half applied.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from models.db_storage import DBStorage
from models.user import Role, Status, User


class AccountStore:

    def __init__(self, storage: DBStorage):
        self.storage = storage

    def get(self, account_id: str) -> Optional[User]:
        if not account_id:
            return None
        return self.storage.get(User, str(account_id))

    def find_by_identifier(self, identifier: str) -> Optional[User]:
        """Look an account up by username, or by email (case-insensitive)."""
        if not identifier:
            return None
        ident = identifier.strip()
        session = self.storage.get_session()
        return (
            session.query(User)
            .filter(or_(User.username == ident, func.lower(User.email) == ident.lower()))
            .execution_options(populate_existing=True)
            .first()
        )

    def update(self, account_id: str, **fields: Any) -> bool:
        """Write all fields in one statement; returns False when no such account."""
        session = self.storage.get_session()
        values = {getattr(User, key): value for key, value in fields.items()}
        try:
            count = (
                session.query(User)
                .filter(User.id == account_id)
                .update(values, synchronize_session="fetch")
            )
        except SQLAlchemyError:
            session.rollback()
            raise
        self.storage.save()
        return count > 0

    def record_login(self, account_id: str, refresh_token_hash: str, when: datetime) -> bool:
        return self.update(account_id, refresh_token_hash=refresh_token_hash, last_login_at=when)

    def rotate_refresh_token(self, account_id: str, old_hash: str, new_hash: str) -> bool:
        """Replace the fingerprint only if it still equals old_hash."""
        session = self.storage.get_session()
        try:
            count = (
                session.query(User)
                .filter(User.id == account_id, User.refresh_token_hash == old_hash)
                .update({User.refresh_token_hash: new_hash}, synchronize_session="fetch")
            )
        except SQLAlchemyError:
            session.rollback()
            raise
        self.storage.save()
        return count > 0

    def clear_refresh_token(self, account_id: str) -> bool:
        return self.update(account_id, refresh_token_hash=None)

    def bump_refresh_version(self, account_id: str, **fields: Any) -> bool:
        """Advance the session epoch and drop the refresh fingerprint, plus any extra fields."""
        return self.update(
            account_id,
            refresh_version=User.refresh_version + 1,
            refresh_token_hash=None,
            **fields,
        )

    def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
        role: Role = Role.USER,
        status: Status = Status.ACTIVE,
        phone_number: Optional[str] = None,
    ) -> User:
        user = User(
            username=username,
            email=email.strip().lower(),
            password_hash=password_hash,
            name=name,
            role=role,
            status=status,
            phone_number=phone_number,
            refresh_version=0,
        )
        self.storage.new(user)
        self.storage.save()
        return user

    def list(self, include_deleted: bool = False) -> List[User]:
        session = self.storage.get_session()
        query = session.query(User)
        if not include_deleted:
            query = query.filter(User.status != Status.DELETED)
        return query.order_by(User.username.asc()).all()

    def exists(self, username: str = None, email: str = None, exclude_id: str = None) -> bool:
        session = self.storage.get_session()
        clauses = []
        if username:
            clauses.append(User.username == username)
        if email:
            clauses.append(func.lower(User.email) == email.strip().lower())
        if not clauses:
            return False
        query = session.query(User.id).filter(or_(*clauses))
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None
