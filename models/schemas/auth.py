from marshmallow import EXCLUDE, Schema, fields, pre_load, validate


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    identifier = fields.String(required=True, validate=validate.Length(min=3))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def accept_aliases(self, data, **kwargs):
        # "username" and "email" are accepted in place of "identifier"
        if isinstance(data, dict) and "identifier" not in data:
            data = dict(data)
            for alias in ("username", "email"):
                if alias in data:
                    data["identifier"] = data.pop(alias)
                    break
        return data


class RefreshSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None, allow_none=True)
