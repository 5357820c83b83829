from marshmallow import Schema, fields, pre_load, validate, validates, ValidationError

from models.user import Role, Status


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _check_password(value):
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")


class UserCreateSchema(Schema):
    username = fields.String(required=True, validate=validate.Length(min=3, max=64))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    name = fields.String(allow_none=True, validate=validate.Length(max=255))
    phone_number = fields.String(allow_none=True, validate=validate.Length(max=32))
    role = fields.Enum(Role, load_default=Role.USER)
    status = fields.Enum(Status, load_default=Status.ACTIVE)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)

    @validates("status")
    def validate_status(self, value, **kwargs):
        if value == Status.DELETED:
            raise ValidationError("Use DELETE to remove a user.")


class UserUpdateSchema(Schema):
    username = fields.String(validate=validate.Length(min=3, max=64))
    email = fields.Email()
    password = fields.String(load_only=True)
    name = fields.String(allow_none=True, validate=validate.Length(max=255))
    phone_number = fields.String(allow_none=True, validate=validate.Length(max=32))
    role = fields.Enum(Role)
    status = fields.Enum(Status)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)

    @validates("status")
    def validate_status(self, value, **kwargs):
        if value == Status.DELETED:
            raise ValidationError("Use DELETE to remove a user.")


class UserOutSchema(Schema):
    """Public view of an account. Credential columns are never listed here."""
    id = fields.String(allow_none=False)
    username = fields.String()
    email = fields.String()
    name = fields.String(allow_none=True)
    phone_number = fields.String(allow_none=True)
    role = fields.Enum(Role)
    status = fields.Enum(Status)
    last_login_at = fields.DateTime(allow_none=True)
    created_at = fields.DateTime(allow_none=True)


class AccountSummarySchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String()
    email = fields.String()
    name = fields.String(allow_none=True)
    role = fields.Enum(Role)
