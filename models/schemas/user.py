from marshmallow import Schema, fields, pre_load, validates_schema, ValidationError


def _norm_email(v):
    return v.strip() if isinstance(v, str) else v


class UserRegisterSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    first_name = fields.String(required=True)
    last_name = fields.String(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = _norm_email(data["email"])
            for key in ("first_name", "last_name"):
                if isinstance(data.get(key), str):
                    data[key] = data[key].strip()
        return data


class UserLoginSchema(Schema):
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class RefreshTokenSchema(Schema):
    refresh_token = fields.String(required=True)


class ProfileUpdateSchema(Schema):
    first_name = fields.String()
    last_name = fields.String()
    password = fields.String(load_only=True)
    is_active = fields.Boolean()

    @validates_schema
    def require_one_field(self, data, **kwargs):
        if not data:
            raise ValidationError(
                "At least one field (first_name, last_name, password, is_active) must be provided"
            )


class UserOutSchema(Schema):
    """Public user view; the password hash is never dumped."""
    id = fields.String()
    email = fields.String()
    first_name = fields.String()
    last_name = fields.String()
    is_active = fields.Boolean()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
    last_login_at = fields.DateTime(allow_none=True)
