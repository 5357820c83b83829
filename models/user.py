import enum

from sqlalchemy import Column, DateTime, Enum, Integer, String, text

from models.base_model import Base, BaseModel


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class Status(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETED = "DELETED"


class User(BaseModel, Base):
    """
    An account and its credential state.

    refresh_token_hash is the fingerprint of the one live refresh token (None: no
    session). refresh_version is the session epoch; tokens carry it as `ver` and
    stop verifying once it moves.
    """
    __tablename__ = "users"
    __private_fields__ = ("password_hash", "refresh_token_hash")

    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    phone_number = Column(String(32), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.USER)
    status = Column(Enum(Status, name="user_status"), nullable=False, default=Status.ACTIVE)
    refresh_token_hash = Column(String(64), nullable=True)
    refresh_version = Column(Integer, nullable=False, default=0, server_default=text("0"))
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @property
    def is_active(self) -> bool:
        return self.status == Status.ACTIVE

    def __repr__(self):
        return f"<User id={self.id} username={self.username}>"
