from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from payaso.extensions import db
from payaso.domain import Role, User as UserRecord, primary_role

USERS_TABLE = "users"
ROLE_VALUES = ", ".join(f"'{r.value}'" for r in Role)


class User(db.Model):
    __tablename__ = USERS_TABLE

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    cedula = db.Column(db.String(30), unique=True, nullable=True, index=True)
    full_name = db.Column(db.String(150), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30))
    whatsapp = db.Column(db.String(30))
    photo_url = db.Column(db.String(255))
    address = db.Column(db.String(255))
    skills = db.Column(db.Text)
    admin_notes = db.Column(db.Text)
    status = db.Column(
        db.String(20),
        db.CheckConstraint("status IN ('active','inactive')"),
        default="active",
        nullable=False,
    )
    exempt_from_fees = db.Column(db.Boolean, default=False, nullable=False)
    is_super_admin = db.Column(db.Boolean, default=False, nullable=False)
    # Role the user is currently acting as, must be one of the active assignments
    active_role = db.Column(db.String(20), nullable=True)
    valid_until = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)

    roles = db.relationship("UserRoleAssignment", back_populates="user", lazy="selectin",
                            cascade="all, delete-orphan")
    registrations = db.relationship("EventRegistration", back_populates="user", lazy="dynamic",
                                    cascade="all, delete-orphan")
    payments = db.relationship("Payment", back_populates="user", lazy="dynamic",
                               cascade="all, delete-orphan")
    graduation_requests = db.relationship("GraduationRequest", back_populates="user", lazy="dynamic",
                                          cascade="all, delete-orphan")
    chat_messages = db.relationship("EventChatMessage", back_populates="user", lazy="dynamic",
                                    cascade="all, delete-orphan")

    # Helpers
    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def available_roles(self):
        roles = [Role(a.role) for a in self.roles if a.active]
        return tuple(dict.fromkeys(roles)) or (Role.volunteer,)

    @property
    def dr_payaso_assignment(self):
        return next((a for a in self.roles if a.active and a.role == Role.dr_payaso.value), None)

    def to_record(self) -> UserRecord:
        roles = self.available_roles
        active = Role(self.active_role) if self.active_role in {r.value for r in roles} else primary_role(roles)
        dr = self.dr_payaso_assignment
        return UserRecord(
            id=str(self.id),
            email=self.email,
            cedula=self.cedula or "",
            full_name=self.full_name or "Usuario",
            phone=self.phone or "",
            whatsapp=self.whatsapp or self.phone or "",
            photo_url=self.photo_url or "",
            character_photo_url=dr.character_photo_url if dr else None,
            artistic_name=dr.artistic_name if dr else None,
            role=active,
            available_roles=roles,
            is_super_admin=bool(self.is_super_admin) or Role.admin in roles,
            status=self.status,
            exempt_from_fees=bool(self.exempt_from_fees),
            valid_until=self.valid_until.isoformat() if self.valid_until else None,
            admin_notes=self.admin_notes,
            skills=self.skills,
            address=self.address,
        )

    __table_args__ = (
        db.Index("idx_users_status", "status"),
    )


class UserRoleAssignment(db.Model):
    __tablename__ = "user_roles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(
        db.String(20),
        db.CheckConstraint(f"role IN ({ROLE_VALUES})"),
        nullable=False,
    )
    active = db.Column(db.Boolean, default=True, nullable=False)
    # Only filled for the dr_payaso role
    artistic_name = db.Column(db.String(100))
    character_photo_url = db.Column(db.String(255))
    assigned_at = db.Column(db.DateTime, default=datetime.now)

    user = db.relationship("User", back_populates="roles")
