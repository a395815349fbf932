"""
sql.py
Flask-SQLAlchemy backend.

Every write runs inside ``_transaction``: on a database error the session is
rolled back, the error logged and a ``BackendError`` raised instead.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from payaso.domain import (
    AttendanceRecord, AttendanceStatus, EventType, GraduationStatus, PaymentStatus,
    Role, UserStats, policy,
)
from payaso.domain.graduation import promoted_roles
from payaso.errors import (
    AuthenticationError, BackendError, CapacityFullError, ConflictError, NotFoundError, PortalError,
    ValidationError,
)
from payaso.extensions import db
from payaso.models import (
    Event, EventChatMessage, EventRegistration, GraduationRequest, Location, Payment,
    SystemMessage, User, UserRoleAssignment,
)

from . import seed
from .base import DataService

logger = logging.getLogger(__name__)


def _pk(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_date(value):
    if value in (None, "") or isinstance(value, date):
        return value or None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError("Dates must use the YYYY-MM-DD format") from None


class SqlDataService(DataService):
    name = "sql"

    @contextmanager
    def _transaction(self, action):
        try:
            yield db.session
            db.session.commit()
        except PortalError:
            db.session.rollback()
            raise
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Database error while %s", action)
            raise BackendError() from None

    @contextmanager
    def _reading(self, action):
        try:
            yield db.session
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Database error while %s", action)
            raise BackendError() from None

    def _get(self, model, pk, message):
        obj = db.session.get(model, _pk(pk)) if _pk(pk) is not None else None
        if obj is None:
            raise NotFoundError(message)
        return obj

    def _user(self, user_id):
        return self._get(User, user_id, "Profile not found")

    def _event(self, event_id):
        return self._get(Event, event_id, "Event not found")

    # ==================== Auth ====================
    def authenticate(self, identifier, password):
        identifier = (identifier or "").strip()
        if not password:
            raise AuthenticationError("Password is required")
        with self._reading("authenticating"):
            if "@" in identifier:
                user = User.query.filter(func.lower(User.email) == identifier.lower()).first()
            else:
                user = User.query.filter_by(cedula=identifier).first()
                if user is None and _pk(identifier) is not None:
                    user = db.session.get(User, _pk(identifier))
                if user is None:
                    raise NotFoundError("Cedula not found or has no email associated")
            if user is None or not user.check_password(password):
                raise AuthenticationError()
            return user.to_record()

    def change_password(self, user_id, new_password, confirm_password=None):
        self.validate_password(new_password, confirm_password)
        with self._transaction("changing password"):
            self._user(user_id).set_password(new_password)

    # ==================== Users ====================
    def get_user(self, user_id):
        with self._reading("loading user"):
            return self._user(user_id).to_record()

    def list_users(self):
        with self._reading("listing users"):
            return [u.to_record() for u in User.query.order_by(User.full_name).all()]

    def create_user(self, data):
        clean = self.clean_new_user(data)
        with self._transaction("creating user"):
            if User.query.filter_by(email=clean["email"]).first():
                raise ConflictError("Email already registered")
            if clean["cedula"] and User.query.filter_by(cedula=clean["cedula"]).first():
                raise ConflictError("Cedula already registered")
            user = User(
                email=clean["email"],
                cedula=clean["cedula"] or None,
                full_name=clean["full_name"],
                phone=clean["phone"],
                whatsapp=clean["phone"],
                photo_url=clean["photo_url"],
                active_role=clean["role"].value,
                is_super_admin=clean["role"] == Role.admin,
            )
            user.set_password(clean["password"])
            user.roles.append(UserRoleAssignment(
                role=clean["role"].value, artistic_name=clean["artistic_name"],
            ))
            db.session.add(user)
        logger.info("Created user %s with role %s", user.email, clean["role"].value)
        return user.to_record()

    def update_user_status(self, user_id, status):
        status = self.clean_status(status)
        with self._transaction("updating user status"):
            user = self._user(user_id)
            user.status = status
        return user.to_record()

    def update_user_profile(self, user_id, data):
        with self._transaction("updating profile"):
            user = self._user(user_id)
            for field in ("full_name", "phone", "whatsapp", "photo_url", "admin_notes",
                          "address", "skills"):
                if field in data:
                    setattr(user, field, data[field])
            for field in ("exempt_from_fees", "is_super_admin"):
                if field in data:
                    setattr(user, field, bool(data[field]))
            if "cedula" in data:
                user.cedula = data["cedula"] or None
            if "valid_until" in data:
                user.valid_until = _parse_date(data["valid_until"])
            if "email" in data:
                email = (data["email"] or "").strip().lower()
                if not email:
                    raise ValidationError("Email is required")
                if User.query.filter(User.email == email, User.id != user.id).first():
                    raise ConflictError("Email already registered")
                user.email = email
            dr = user.dr_payaso_assignment
            if dr is not None:
                if "artistic_name" in data:
                    dr.artistic_name = data["artistic_name"]
                if "character_photo_url" in data:
                    dr.character_photo_url = data["character_photo_url"]
        if data.get("available_roles"):
            return self.replace_user_roles(user.id, data["available_roles"])
        return user.to_record()

    def replace_user_roles(self, user_id, roles, artistic_name=None, character_photo_url=None):
        roles = self.clean_roles(roles)
        with self._transaction("replacing roles"):
            user = self._user(user_id)
            previous = user.dr_payaso_assignment
            keep_name = previous.artistic_name if previous else None
            keep_photo = previous.character_photo_url if previous else None
            # delete-orphan removes the old rows in the same flush
            user.roles.clear()
            db.session.flush()
            for role in roles:
                assignment = UserRoleAssignment(role=role.value)
                if role == Role.dr_payaso:
                    assignment.artistic_name = artistic_name if artistic_name is not None else keep_name
                    assignment.character_photo_url = (
                        character_photo_url if character_photo_url is not None else keep_photo
                    )
                user.roles.append(assignment)
            if user.active_role not in {r.value for r in roles}:
                user.active_role = roles[0].value
        logger.info("Roles of user %s set to %s", user.id, ", ".join(r.value for r in roles))
        return user.to_record()

    def set_active_role(self, user_id, role):
        role = self.clean_roles([role])[0]
        with self._transaction("switching role"):
            user = self._user(user_id)
            if role not in user.available_roles:
                raise ValidationError("Role not assigned to this user")
            user.active_role = role.value
        return user.to_record()

    # ==================== Locations ====================
    def list_locations(self, include_inactive=False):
        with self._reading("listing locations"):
            query = Location.query
            if not include_inactive:
                query = query.filter_by(active=True)
            return [l.to_record() for l in query.order_by(Location.name).all()]

    def create_location(self, name, type, address=None):
        if not (name or "").strip():
            raise ValidationError("Name is required")
        type = self.clean_location_type(type)
        with self._transaction("creating location"):
            location = Location(name=name.strip(), type=type, address=address, active=True)
            db.session.add(location)
        return location.to_record()

    def update_location(self, location_id, data):
        with self._transaction("updating location"):
            location = self._get(Location, location_id, "Location not found")
            if "name" in data:
                location.name = data["name"]
            if "type" in data:
                location.type = self.clean_location_type(data["type"])
            if "address" in data:
                location.address = data["address"]
            if "active" in data:
                location.active = bool(data["active"])
        return location.to_record()

    def set_location_active(self, location_id, active):
        return self.update_location(location_id, {"active": bool(active)})

    # ==================== Events ====================
    def list_events(self, viewer_id=None):
        with self._reading("listing events"):
            events = Event.query.order_by(Event.starts_at).all()
            return [e.to_record(viewer_id) for e in events]

    def get_event(self, event_id, viewer_id=None):
        with self._reading("loading event"):
            return self._event(event_id).to_record(viewer_id)

    def create_event(self, data):
        clean = self.clean_new_event(data)
        capacity = clean["capacity"]
        with self._transaction("creating event"):
            location = None
            if clean["location_id"]:
                location = self._get(Location, clean["location_id"], "Location not found")
            event = Event(
                type=clean["type"].value,
                title=clean["title"],
                description=clean["description"],
                starts_at=clean["date"],
                location_id=location.id if location else None,
                location_name=clean["location"] or None,
                capacity_recruit=capacity.recruit,
                capacity_dr_payaso=capacity.dr_payaso,
                capacity_photographer=capacity.photographer,
                capacity_volunteer=capacity.volunteer,
                total_capacity=clean["total_capacity"],
                created_by=_pk(clean["created_by"]),
            )
            db.session.add(event)
        logger.info("Created %s event %s", event.type, event.id)
        return event.to_record()

    def register(self, event_id, user_id, role):
        with self._transaction("registering"):
            # row lock serialises registrations for the event where the dialect supports it
            event = Event.query.filter_by(id=_pk(event_id)).with_for_update().first()
            if event is None:
                raise NotFoundError("Event not found")
            user = self._user(user_id)
            exists = EventRegistration.query.filter_by(event_id=event.id, user_id=user.id).first()
            if exists:
                return
            bucket = None if event.type == EventType.training.value else policy.bucket_for(role)
            self._check_capacity(event, bucket)
            db.session.add(EventRegistration(event_id=event.id, user_id=user.id, bucket=bucket))
            try:
                db.session.flush()
            except IntegrityError:
                # a concurrent request registered first
                db.session.rollback()
                return

    @staticmethod
    def _check_capacity(event, bucket):
        taken = EventRegistration.query.filter_by(event_id=event.id)
        if bucket is None:
            limit = event.total_capacity or 0
        else:
            taken = taken.filter_by(bucket=bucket)
            limit = getattr(event.capacity, bucket)
        if taken.count() >= limit:
            raise CapacityFullError()

    def unregister(self, event_id, user_id):
        with self._transaction("unregistering"):
            event = self._event(event_id)
            EventRegistration.query.filter_by(
                event_id=event.id, user_id=_pk(user_id)
            ).delete(synchronize_session="fetch")

    def list_attendees(self, event_id):
        with self._reading("listing attendees"):
            event = self._event(event_id)
            rows = []
            for reg in event.registrations:
                user = reg.user
                rows.append(AttendanceRecord(
                    user_id=str(user.id),
                    user_full_name=user.full_name,
                    user_role=Role(reg.bucket).label if reg.bucket else "Asistente",
                    user_photo=user.photo_url or "",
                    status=AttendanceStatus(reg.status),
                ))
            return sorted(rows, key=lambda r: r.user_full_name)

    def mark_attendance(self, event_id, user_id, status):
        status = AttendanceStatus(status)
        with self._transaction("marking attendance"):
            event = self._event(event_id)
            reg = EventRegistration.query.filter_by(event_id=event.id, user_id=_pk(user_id)).first()
            if reg is None:
                raise NotFoundError("User is not registered for this event")
            reg.attended = status == AttendanceStatus.attended

    # ==================== Payments ====================
    def list_payments(self, user_id=None):
        with self._reading("listing payments"):
            query = Payment.query
            if user_id is not None:
                query = query.filter_by(user_id=_pk(user_id))
            pending_first = case((Payment.status == PaymentStatus.pending_approval.value, 0), else_=1)
            query = query.order_by(pending_first, Payment.date_paid.desc().nullslast(), Payment.id.desc())
            return [p.to_record() for p in query.all()]

    def create_payment(self, data):
        clean = self.clean_new_payment(data)
        with self._transaction("creating payment"):
            user = self._user(clean["user_id"])
            payment = Payment(
                user_id=user.id,
                amount=clean["amount"],
                month=clean["month"],
                status=clean["status"].value,
                date_paid=date.today() if clean["status"] == PaymentStatus.paid else None,
                reference_id=clean["reference_id"],
                receipt_url=clean["receipt_url"],
                notes=clean["notes"],
            )
            db.session.add(payment)
        return payment.to_record()

    def update_payment_status(self, payment_id, status):
        with self._transaction("updating payment"):
            payment = self._get(Payment, payment_id, "Payment not found")
            status = self.check_payment_transition(payment.status, status)
            payment.status = status.value
            if status == PaymentStatus.paid and payment.date_paid is None:
                payment.date_paid = date.today()
        return payment.to_record()

    # ==================== Stats & graduation ====================
    def get_user_stats(self, user_id):
        with self._reading("computing stats"):
            user = self._user(user_id)
            counts = dict(
                db.session.query(Event.type, func.count(EventRegistration.id))
                .join(EventRegistration, EventRegistration.event_id == Event.id)
                .filter(EventRegistration.user_id == user.id, EventRegistration.attended.is_(True))
                .group_by(Event.type)
                .all()
            )
            requested = GraduationRequest.query.filter_by(
                user_id=user.id, status=GraduationStatus.pending.value
            ).first() is not None
        return UserStats(
            training_hours=counts.get(EventType.training.value, 0) * self.settings.hours_per_training,
            visits_count=counts.get(EventType.visit.value, 0),
            graduation_requested=requested,
        )

    def create_graduation_request(self, user_id, stats):
        with self._transaction("requesting graduation"):
            user = self._user(user_id)
            request = GraduationRequest(
                user_id=user.id,
                training_hours=stats.training_hours,
                visits_count=stats.visits_count,
                status=GraduationStatus.pending.value,
            )
            db.session.add(request)
        return request.to_record()

    def list_graduation_requests(self, status=GraduationStatus.pending):
        with self._reading("listing graduation requests"):
            query = GraduationRequest.query
            if status is not None:
                query = query.filter_by(status=GraduationStatus(status).value)
            return [g.to_record() for g in query.order_by(GraduationRequest.requested_at).all()]

    def approve_graduation(self, request_id):
        with self._transaction("approving graduation"):
            request = self._get(GraduationRequest, request_id, "Graduation request not found")
            self.check_graduation_pending(request.status)
            user = request.user
            roles = promoted_roles(user.available_roles)
            artistic = user.dr_payaso_assignment.artistic_name if user.dr_payaso_assignment else None
            user.roles.clear()
            db.session.flush()
            for role in roles:
                user.roles.append(UserRoleAssignment(
                    role=role.value, artistic_name=artistic if role == Role.dr_payaso else None,
                ))
            if user.active_role in (None, Role.recruit.value):
                user.active_role = Role.dr_payaso.value
            request.status = GraduationStatus.approved.value
            request.decided_at = datetime.now()
        logger.info("Graduation request %s approved, user %s promoted", request.id, user.id)
        return request.to_record()

    def reject_graduation(self, request_id):
        with self._transaction("rejecting graduation"):
            request = self._get(GraduationRequest, request_id, "Graduation request not found")
            self.check_graduation_pending(request.status)
            request.status = GraduationStatus.rejected.value
            request.decided_at = datetime.now()
        return request.to_record()

    # ==================== Chat & messaging ====================
    def list_event_messages(self, event_id, since=None):
        with self._reading("loading chat"):
            event = self._event(event_id)
            query = EventChatMessage.query.filter_by(event_id=event.id)
            if since is not None:
                query = query.filter(EventChatMessage.created_at > since)
            return [m.to_record() for m in query.order_by(EventChatMessage.created_at).all()]

    def send_event_message(self, event_id, user_id, text):
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is required")
        with self._transaction("sending chat message"):
            event = self._event(event_id)
            user = self._user(user_id)
            message = EventChatMessage(event_id=event.id, user_id=user.id, message=text)
            db.session.add(message)
        return message.to_record()

    def send_mass_message(self, target_roles, subject, body, sent_by="admin"):
        roles, subject, body = self.clean_mass_message(target_roles, subject, body)
        with self._transaction("sending mass message"):
            message = SystemMessage(
                subject=subject, body=body,
                target_roles=[r.value for r in roles], sent_by=sent_by,
            )
            db.session.add(message)
        logger.info("Mass message %s sent to %s", message.id, ", ".join(r.value for r in roles))
        return message.to_record()

    def list_inbox(self, user):
        with self._reading("loading inbox"):
            mine = set(user.available_roles)
            messages = SystemMessage.query.order_by(SystemMessage.created_at.desc()).all()
            return [m.to_record() for m in messages if mine & {Role(r) for r in m.target_roles or []}]

    # ==================== Demo data ====================
    def load_demo(self, today=None):
        """Insert the demo dataset into an empty database."""
        today = today or date.today()
        now = datetime.now()
        with self._transaction("loading demo data"):
            if User.query.first() is not None:
                raise ConflictError("Database is not empty")
            users, locations, events = {}, {}, {}
            for record in seed.demo_users():
                user = User(
                    email=record.email, cedula=record.cedula, full_name=record.full_name,
                    phone=record.phone, whatsapp=record.whatsapp, photo_url=record.photo_url,
                    is_super_admin=record.is_super_admin, exempt_from_fees=record.exempt_from_fees,
                    active_role=record.role.value, admin_notes=record.admin_notes,
                    skills=record.skills, valid_until=_parse_date(record.valid_until),
                )
                user.set_password(self.settings.demo_password)
                for role in record.available_roles:
                    user.roles.append(UserRoleAssignment(
                        role=role.value,
                        artistic_name=record.artistic_name if role == Role.dr_payaso else None,
                    ))
                db.session.add(user)
                users[record.id] = user
            for record in seed.demo_locations():
                location = Location(name=record.name, type=record.type, address=record.address)
                db.session.add(location)
                locations[record.id] = location
            for record in seed.demo_events(today):
                event = Event(
                    type=record.type.value, title=record.title, description=record.description,
                    starts_at=record.date, location=locations.get(record.location_id),
                    capacity_recruit=record.capacity.recruit,
                    capacity_dr_payaso=record.capacity.dr_payaso,
                    capacity_photographer=record.capacity.photographer,
                    capacity_volunteer=record.capacity.volunteer,
                    total_capacity=record.total_capacity,
                )
                db.session.add(event)
                events[record.id] = event
            for (event_id, user_id), reg in seed.demo_registrations().items():
                db.session.add(EventRegistration(
                    event=events[event_id], user=users[user_id],
                    bucket=reg["bucket"], attended=reg["attended"],
                ))
            for record in seed.demo_payments():
                db.session.add(Payment(
                    user=users[record.user_id], amount=record.amount, month=record.month,
                    status=record.status.value, date_paid=record.date_paid,
                ))
            for record in seed.demo_graduation_requests(now):
                db.session.add(GraduationRequest(
                    user=users[record.user_id], training_hours=record.stats.training_hours,
                    visits_count=record.stats.visits_count, status=record.status.value,
                    requested_at=record.request_date,
                ))
            for record in seed.demo_messages(now):
                db.session.add(EventChatMessage(
                    event=events[record.event_id], user=users[record.user_id],
                    message=record.text, created_at=record.timestamp,
                ))
        logger.info("Demo data loaded")
