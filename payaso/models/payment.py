from datetime import datetime
from payaso.extensions import db
from payaso.domain import Payment as PaymentRecord, PaymentStatus


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    # Free-text month label, e.g. "Junio 2024"
    month = db.Column(db.String(40), nullable=False)
    date_paid = db.Column(db.Date)
    status = db.Column(
        db.String(20),
        db.CheckConstraint("status IN ('paid','pending_approval','rejected')"),
        default="pending_approval",
        index=True,
    )
    reference_id = db.Column(db.String(100))
    receipt_url = db.Column(db.String(255))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    user = db.relationship("User", back_populates="payments")

    __table_args__ = (
        db.Index('idx_payment_user_id', 'user_id'),
    )

    def __repr__(self):
        return f'<Payment {self.id}: {self.amount} {self.month} - {self.status}>'

    def to_record(self):
        return PaymentRecord(
            id=str(self.id),
            user_id=str(self.user_id),
            amount=float(self.amount),
            month=self.month,
            status=PaymentStatus(self.status),
            date_paid=self.date_paid,
            reference_id=self.reference_id,
            receipt_url=self.receipt_url,
            notes=self.notes,
        )
