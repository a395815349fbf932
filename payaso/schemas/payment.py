from marshmallow import fields, validate

from payaso.domain import PaymentStatus

from . import BaseSchema


class PaymentSchema(BaseSchema):
    id = fields.String()
    user_id = fields.String()
    amount = fields.Float()
    month = fields.String()
    status = fields.Enum(PaymentStatus, by_value=True)
    date_paid = fields.Date(allow_none=True)
    reference_id = fields.String(allow_none=True)
    receipt_url = fields.String(allow_none=True)
    notes = fields.String(allow_none=True)


class PaymentCreateSchema(BaseSchema):
    # staff record payments for others; volunteers report their own
    user_id = fields.String(load_default=None)
    amount = fields.Float(required=True, validate=validate.Range(min=0, min_inclusive=False))
    month = fields.String(required=True, validate=validate.Length(min=1))
    reference_id = fields.String(load_default=None, allow_none=True)
    receipt_url = fields.String(load_default=None, allow_none=True)
    notes = fields.String(load_default=None, allow_none=True)


class PaymentStatusSchema(BaseSchema):
    status = fields.String(
        required=True,
        validate=validate.OneOf([PaymentStatus.paid.value, PaymentStatus.rejected.value]),
    )


class DuesRowSchema(BaseSchema):
    user_id = fields.String()
    full_name = fields.String()
    exempt_from_fees = fields.Boolean()
    is_up_to_date = fields.Boolean()
    total_paid = fields.Float()
    last_payment_month = fields.String()


class TreasurySchema(BaseSchema):
    current_month = fields.String()
    monthly_fee = fields.Float()
    collected_this_month = fields.Float()
    pending_payments = fields.List(fields.Nested(PaymentSchema))
    up_to_date_count = fields.Integer()
    overdue_count = fields.Integer()
    compliance_rate = fields.Integer()
    users = fields.List(fields.Nested(DuesRowSchema))


payment_schema = PaymentSchema()
payments_schema = PaymentSchema(many=True)
treasury_schema = TreasurySchema()
