from marshmallow import fields, post_load, validate

from payaso.domain import AttendanceStatus, EventType, RoleCapacity
from payaso.domain.types import LOCATION_TYPES

from . import BaseSchema


class RoleCapacitySchema(BaseSchema):
    recruit = fields.Integer(load_default=0, validate=validate.Range(min=0))
    dr_payaso = fields.Integer(load_default=0, validate=validate.Range(min=0))
    photographer = fields.Integer(load_default=0, validate=validate.Range(min=0))
    volunteer = fields.Integer(load_default=0, validate=validate.Range(min=0))

    @post_load
    def make_capacity(self, data, **kwargs):
        return RoleCapacity(**data)


class EventSchema(BaseSchema):
    id = fields.String()
    type = fields.Enum(EventType, by_value=True)
    title = fields.String()
    date = fields.DateTime()
    location = fields.String()
    location_id = fields.String(allow_none=True)
    description = fields.String()
    capacity = fields.Nested(RoleCapacitySchema)
    attendees = fields.Nested(RoleCapacitySchema)
    total_capacity = fields.Integer()
    total_attendees = fields.Integer()
    registered = fields.Boolean()
    current_user_status = fields.Enum(AttendanceStatus, by_value=True, allow_none=True)


class EventCreateSchema(BaseSchema):
    title = fields.String(required=True, validate=validate.Length(min=1))
    type = fields.String(required=True, validate=validate.OneOf([t.value for t in EventType]))
    date = fields.DateTime(required=True)
    location = fields.String(load_default="")
    location_id = fields.String(load_default=None, allow_none=True)
    description = fields.String(load_default="")
    capacity = fields.Nested(RoleCapacitySchema, load_default=None)
    total_capacity = fields.Integer(load_default=0, validate=validate.Range(min=0))


class AttendanceRecordSchema(BaseSchema):
    user_id = fields.String()
    user_full_name = fields.String()
    user_role = fields.String()
    user_photo = fields.String()
    status = fields.Enum(AttendanceStatus, by_value=True)


class AttendanceUpdateSchema(BaseSchema):
    status = fields.String(
        required=True,
        validate=validate.OneOf([AttendanceStatus.attended.value, AttendanceStatus.absent.value]),
    )


class ChatMessageSchema(BaseSchema):
    id = fields.String()
    event_id = fields.String()
    user_id = fields.String()
    user_name = fields.String()
    user_photo = fields.String()
    text = fields.String()
    timestamp = fields.DateTime()


class ChatMessageInSchema(BaseSchema):
    text = fields.String(required=True, validate=validate.Length(min=1, max=2000))


class LocationSchema(BaseSchema):
    id = fields.String(dump_only=True)
    name = fields.String(required=True, validate=validate.Length(min=1))
    type = fields.String(load_default="otro", validate=validate.OneOf(LOCATION_TYPES))
    address = fields.String(load_default=None, allow_none=True)
    active = fields.Boolean(dump_only=True)


class LocationStatusSchema(BaseSchema):
    active = fields.Boolean(required=True)


event_schema = EventSchema()
events_schema = EventSchema(many=True)
attendance_records_schema = AttendanceRecordSchema(many=True)
chat_message_schema = ChatMessageSchema()
chat_messages_schema = ChatMessageSchema(many=True)
location_schema = LocationSchema()
locations_schema = LocationSchema(many=True)
