from datetime import datetime
from payaso.extensions import db


class EventRegistration(db.Model):
    __tablename__ = "event_registrations"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Capacity bucket the spot was taken from; NULL for trainings
    bucket = db.Column(
        db.String(20),
        db.CheckConstraint("bucket IN ('recruit','dr_payaso','photographer','volunteer')"),
        nullable=True,
    )
    # NULL = registered, attendance not taken yet
    attended = db.Column(db.Boolean, nullable=True)
    registered_at = db.Column(db.DateTime, default=datetime.now)

    event = db.relationship("Event", back_populates="registrations")
    user = db.relationship("User", back_populates="registrations")

    __table_args__ = (
        db.UniqueConstraint("event_id", "user_id", name="uq_registration_event_user"),
    )

    @property
    def status(self):
        if self.attended is True:
            return "attended"
        if self.attended is False:
            return "absent"
        return "registered"
