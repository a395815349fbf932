from datetime import datetime
from payaso.extensions import db
from payaso.domain import AttendanceStatus, EventType, PayasoEvent, RoleCapacity


# ================================
# Event Model (trainings and visits)
# ================================

class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(
        db.String(20),
        db.CheckConstraint("type IN ('training','visit')"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    starts_at = db.Column(db.DateTime, nullable=False, index=True)

    # Either a catalogued location or a free-text one
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    location_name = db.Column(db.String(150))

    # Spots per role (visits); trainings only use total_capacity
    capacity_recruit = db.Column(db.Integer, default=0, nullable=False)
    capacity_dr_payaso = db.Column(db.Integer, default=0, nullable=False)
    capacity_photographer = db.Column(db.Integer, default=0, nullable=False)
    capacity_volunteer = db.Column(db.Integer, default=0, nullable=False)
    total_capacity = db.Column(db.Integer, default=0, nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)

    location = db.relationship("Location", back_populates="events")
    registrations = db.relationship("EventRegistration", back_populates="event", lazy="selectin",
                                    cascade="all, delete-orphan")
    chat_messages = db.relationship("EventChatMessage", back_populates="event", lazy="dynamic",
                                    cascade="all, delete-orphan")

    @property
    def capacity(self):
        return RoleCapacity(
            recruit=self.capacity_recruit or 0,
            dr_payaso=self.capacity_dr_payaso or 0,
            photographer=self.capacity_photographer or 0,
            volunteer=self.capacity_volunteer or 0,
        )

    @property
    def attendees(self):
        taken = {"recruit": 0, "dr_payaso": 0, "photographer": 0, "volunteer": 0}
        for reg in self.registrations:
            if reg.bucket in taken:
                taken[reg.bucket] += 1
        return RoleCapacity(**taken)

    @property
    def display_location(self):
        if self.location_name:
            return self.location_name
        if self.location:
            return self.location.name
        return "Ubicación por definir"

    def to_record(self, viewer_id=None):
        mine = None
        if viewer_id is not None:
            mine = next((r for r in self.registrations if str(r.user_id) == str(viewer_id)), None)
        is_visit = self.type == EventType.visit.value
        return PayasoEvent(
            id=str(self.id),
            type=EventType(self.type),
            title=self.title,
            date=self.starts_at,
            location=self.display_location,
            location_id=str(self.location_id) if self.location_id else None,
            description=self.description or "",
            capacity=self.capacity,
            attendees=self.attendees,
            total_capacity=self.capacity.total if is_visit else self.total_capacity,
            total_attendees=len(self.registrations),
            registered=mine is not None,
            current_user_status=AttendanceStatus(mine.status) if mine else None,
        )
