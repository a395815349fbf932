from payaso.extensions import db
from payaso.domain import PayasoLocation


class Location(db.Model):
    __tablename__ = "locations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    type = db.Column(
        db.String(20),
        db.CheckConstraint("type IN ('hospital','albergue','escuela','otro')"),
        default="otro",
        nullable=False,
    )
    address = db.Column(db.String(255))
    active = db.Column(db.Boolean, default=True, nullable=False, index=True)

    events = db.relationship("Event", back_populates="location")

    def to_record(self):
        return PayasoLocation(
            id=str(self.id),
            name=self.name,
            type=self.type,
            address=self.address,
            active=bool(self.active),
        )
