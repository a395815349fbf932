from marshmallow import fields, validate

from payaso.domain import GraduationStatus, Role

from . import BaseSchema


class UserStatsSchema(BaseSchema):
    training_hours = fields.Integer()
    visits_count = fields.Integer()
    graduation_requested = fields.Boolean()


class GraduationRequestSchema(BaseSchema):
    id = fields.String()
    user_id = fields.String()
    user_full_name = fields.String()
    user_photo = fields.String()
    stats = fields.Nested(UserStatsSchema)
    status = fields.Enum(GraduationStatus, by_value=True)
    request_date = fields.DateTime()


class SystemMessageSchema(BaseSchema):
    id = fields.String()
    subject = fields.String()
    body = fields.String()
    target_roles = fields.List(fields.Enum(Role, by_value=True))
    sent_at = fields.DateTime()
    sent_by = fields.String()


class MassMessageSchema(BaseSchema):
    target_roles = fields.List(fields.String(), required=True, validate=validate.Length(min=1))
    subject = fields.String(required=True, validate=validate.Length(min=1, max=200))
    body = fields.String(required=True, validate=validate.Length(min=1))


user_stats_schema = UserStatsSchema()
graduation_request_schema = GraduationRequestSchema()
graduation_requests_schema = GraduationRequestSchema(many=True)
system_message_schema = SystemMessageSchema()
system_messages_schema = SystemMessageSchema(many=True)
