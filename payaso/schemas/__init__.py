from flask import request
from marshmallow import EXCLUDE, ValidationError as SchemaError

from payaso.errors import ValidationError
from payaso.extensions import ma


class BaseSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE


def load_body(schema, partial=False):
    """Validate the JSON body of the current request with ``schema``."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Missing JSON")
    try:
        return schema.load(data, partial=partial)
    except SchemaError as err:
        raise ValidationError("Invalid data", errors=err.messages) from None
