from marshmallow import fields, validate

from payaso.domain import Role

from . import BaseSchema

ROLE_CHOICES = [r.value for r in Role]


class UserSchema(BaseSchema):
    id = fields.String(dump_only=True)
    email = fields.String()
    cedula = fields.String()
    full_name = fields.String()
    phone = fields.String()
    whatsapp = fields.String()
    photo_url = fields.String()
    character_photo_url = fields.String(allow_none=True)
    artistic_name = fields.String(allow_none=True)
    display_name = fields.String(dump_only=True)
    role = fields.Enum(Role, by_value=True)
    role_label = fields.Function(lambda u: u.role.label, dump_only=True)
    available_roles = fields.List(fields.Enum(Role, by_value=True))
    is_super_admin = fields.Boolean()
    status = fields.String()
    exempt_from_fees = fields.Boolean()
    valid_until = fields.String(allow_none=True)
    admin_notes = fields.String(allow_none=True)
    skills = fields.String(allow_none=True)
    address = fields.String(allow_none=True)


class LoginSchema(BaseSchema):
    # email or cedula
    identifier = fields.String(load_default=None)
    email = fields.String(load_default=None)
    cedula = fields.String(load_default=None)
    password = fields.String(required=True)


class PasswordChangeSchema(BaseSchema):
    password = fields.String(required=True)
    confirm_password = fields.String(load_default=None)


class RoleSwitchSchema(BaseSchema):
    role = fields.String(required=True)


class UserCreateSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True)
    full_name = fields.String(required=True, validate=validate.Length(min=2))
    cedula = fields.String(load_default="")
    phone = fields.String(load_default="")
    role = fields.String(load_default=Role.recruit.value)
    artistic_name = fields.String(load_default=None, allow_none=True)
    photo_url = fields.String(load_default="")


class UserUpdateSchema(BaseSchema):
    email = fields.Email()
    cedula = fields.String()
    full_name = fields.String(validate=validate.Length(min=2))
    phone = fields.String()
    whatsapp = fields.String()
    photo_url = fields.String()
    character_photo_url = fields.String(allow_none=True)
    artistic_name = fields.String(allow_none=True)
    address = fields.String(allow_none=True)
    skills = fields.String(allow_none=True)
    # admin only
    admin_notes = fields.String(allow_none=True)
    exempt_from_fees = fields.Boolean()
    is_super_admin = fields.Boolean()
    valid_until = fields.Date(allow_none=True)
    available_roles = fields.List(fields.String(validate=validate.OneOf(ROLE_CHOICES)))


ADMIN_ONLY_FIELDS = ("admin_notes", "exempt_from_fees", "is_super_admin", "valid_until", "available_roles")


class UserStatusSchema(BaseSchema):
    status = fields.String(required=True, validate=validate.OneOf(["active", "inactive"]))


class UserRolesSchema(BaseSchema):
    roles = fields.List(fields.String(), required=True, validate=validate.Length(min=1))
    artistic_name = fields.String(load_default=None, allow_none=True)
    character_photo_url = fields.String(load_default=None, allow_none=True)


user_schema = UserSchema()
users_schema = UserSchema(many=True)
# what other volunteers may see of a profile
public_user_schema = UserSchema(exclude=("admin_notes", "exempt_from_fees", "valid_until"))
