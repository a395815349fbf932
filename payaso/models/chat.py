from datetime import datetime
from payaso.extensions import db
from payaso.domain import ChatMessage, Role, SystemMessage as SystemMessageRecord


class EventChatMessage(db.Model):
    __tablename__ = "event_chat_messages"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now, index=True)

    event = db.relationship("Event", back_populates="chat_messages")
    user = db.relationship("User", back_populates="chat_messages")

    def to_record(self):
        author = self.user.to_record()
        return ChatMessage(
            id=str(self.id),
            event_id=str(self.event_id),
            user_id=str(self.user_id),
            user_name=author.display_name,
            user_photo=author.display_photo,
            text=self.message,
            timestamp=self.created_at,
        )


class SystemMessage(db.Model):
    __tablename__ = "system_messages"

    id = db.Column(db.Integer, primary_key=True)
    subject = db.Column(db.String(200), nullable=False)
    body = db.Column(db.Text, nullable=False)
    target_roles = db.Column(db.JSON, nullable=False, default=list)
    sent_by = db.Column(db.String(150))
    created_at = db.Column(db.DateTime, default=datetime.now, index=True)

    def to_record(self):
        return SystemMessageRecord(
            id=str(self.id),
            subject=self.subject,
            body=self.body,
            target_roles=tuple(Role(r) for r in self.target_roles or []),
            sent_at=self.created_at,
            sent_by=self.sent_by or "admin",
        )
