from datetime import datetime
from payaso.extensions import db
from payaso.domain import GraduationRequest as GraduationRecord, GraduationStatus, UserStats


class GraduationRequest(db.Model):
    __tablename__ = "graduation_requests"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # Snapshot of the recruit's progress when the request was filed
    training_hours = db.Column(db.Integer, default=0, nullable=False)
    visits_count = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(
        db.String(20),
        db.CheckConstraint("status IN ('pending','approved','rejected')"),
        default="pending",
        index=True,
    )
    requested_at = db.Column(db.DateTime, default=datetime.now)
    decided_at = db.Column(db.DateTime)

    user = db.relationship("User", back_populates="graduation_requests")

    def to_record(self):
        return GraduationRecord(
            id=str(self.id),
            user_id=str(self.user_id),
            user_full_name=self.user.full_name if self.user else "Desconocido",
            user_photo=(self.user.photo_url or "") if self.user else "",
            stats=UserStats(
                training_hours=self.training_hours,
                visits_count=self.visits_count,
                graduation_requested=True,
            ),
            status=GraduationStatus(self.status),
            request_date=self.requested_at,
        )
