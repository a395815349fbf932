"""
memory.py
In-memory backend with the demo dataset.

One instance is built by the application factory and lives on the app;
tests call ``reset()`` to get the seed back.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from datetime import date, datetime

from werkzeug.security import check_password_hash, generate_password_hash

from payaso.domain import (
    AttendanceRecord, AttendanceStatus, ChatMessage, EventType, GraduationRequest,
    GraduationStatus, PayasoEvent, PayasoLocation, Payment, PaymentStatus, Role,
    RoleCapacity, SystemMessage, User, UserStats, policy,
)
from payaso.domain.capacity import is_full
from payaso.domain.graduation import promoted_roles
from payaso.errors import (
    AuthenticationError, CapacityFullError, ConflictError, NotFoundError, ValidationError,
)

from . import seed
from .base import DataService

logger = logging.getLogger(__name__)


class InMemoryDataService(DataService):
    name = "memory"

    def __init__(self, settings=None, today: date | None = None):
        super().__init__(settings)
        self._lock = threading.RLock()
        self._today = today
        self._demo_hash = None
        self.reset()

    def reset(self):
        """Drop every change and reload the demo dataset."""
        with self._lock:
            today = self._today or date.today()
            now = datetime.now()
            if self._demo_hash is None:
                self._demo_hash = generate_password_hash(self.settings.demo_password)
            self._ids = itertools.count(100)
            self._users = {u.id: u for u in seed.demo_users()}
            self._passwords = {uid: self._demo_hash for uid in self._users}
            self._locations = {l.id: l for l in seed.demo_locations()}
            self._events = {e.id: e for e in seed.demo_events(today)}
            self._registrations = seed.demo_registrations()
            self._payments = sorted(seed.demo_payments(), key=lambda p: p.id, reverse=True)
            self._graduation = {g.id: g for g in seed.demo_graduation_requests(now)}
            self._messages = seed.demo_messages(now)
            self._system_messages = []
        logger.info("In-memory data service loaded with demo data")

    def _next_id(self, prefix):
        return f"{prefix}{next(self._ids)}"

    # ==================== Auth ====================
    def authenticate(self, identifier, password):
        identifier = (identifier or "").strip()
        if not password:
            raise AuthenticationError("Password is required")
        if "@" in identifier:
            user = next((u for u in self._users.values() if u.email.lower() == identifier.lower()), None)
        else:
            user = next((u for u in self._users.values() if identifier in (u.cedula, u.id)), None)
            if user is None:
                raise NotFoundError("Cedula not found or has no email associated")
        if user is None or not check_password_hash(self._passwords[user.id], password):
            raise AuthenticationError()
        return user

    def change_password(self, user_id, new_password, confirm_password=None):
        self.validate_password(new_password, confirm_password)
        with self._lock:
            self.get_user(user_id)
            self._passwords[str(user_id)] = generate_password_hash(new_password)

    # ==================== Users ====================
    def get_user(self, user_id):
        try:
            return self._users[str(user_id)]
        except KeyError:
            raise NotFoundError("Profile not found") from None

    def list_users(self):
        return sorted(self._users.values(), key=lambda u: u.full_name)

    def create_user(self, data):
        clean = self.clean_new_user(data)
        with self._lock:
            if any(u.email == clean["email"] for u in self._users.values()):
                raise ConflictError("Email already registered")
            if clean["cedula"] and any(u.cedula == clean["cedula"] for u in self._users.values()):
                raise ConflictError("Cedula already registered")
            user = User(
                id=self._next_id("u"),
                email=clean["email"],
                cedula=clean["cedula"],
                full_name=clean["full_name"],
                phone=clean["phone"],
                whatsapp=clean["phone"],
                photo_url=clean["photo_url"],
                artistic_name=clean["artistic_name"],
                role=clean["role"],
                available_roles=(clean["role"],),
                is_super_admin=clean["role"] == Role.admin,
            )
            self._users[user.id] = user
            self._passwords[user.id] = generate_password_hash(clean["password"])
        return user

    def update_user_status(self, user_id, status):
        status = self.clean_status(status)
        with self._lock:
            user = replace(self.get_user(user_id), status=status)
            self._users[user.id] = user
        return user

    PROFILE_FIELDS = (
        "full_name", "phone", "whatsapp", "photo_url", "admin_notes", "exempt_from_fees",
        "is_super_admin", "address", "skills", "email", "cedula", "artistic_name",
        "character_photo_url", "valid_until",
    )

    def update_user_profile(self, user_id, data):
        with self._lock:
            user = self.get_user(user_id)
            changes = {k: data[k] for k in self.PROFILE_FIELDS if k in data}
            if "email" in changes:
                changes["email"] = (changes["email"] or "").strip().lower()
                if not changes["email"]:
                    raise ValidationError("Email is required")
                if any(u.email == changes["email"] and u.id != user.id for u in self._users.values()):
                    raise ConflictError("Email already registered")
            user = replace(user, **changes)
            self._users[user.id] = user
        if data.get("available_roles"):
            user = self.replace_user_roles(user.id, data["available_roles"])
        return user

    def replace_user_roles(self, user_id, roles, artistic_name=None, character_photo_url=None):
        roles = self.clean_roles(roles)
        with self._lock:
            user = self.get_user(user_id)
            active = user.role if user.role in roles else roles[0]
            changes = {"available_roles": roles, "role": active}
            if Role.dr_payaso in roles:
                if artistic_name is not None:
                    changes["artistic_name"] = artistic_name
                if character_photo_url is not None:
                    changes["character_photo_url"] = character_photo_url
            user = replace(user, **changes)
            self._users[user.id] = user
        return user

    def set_active_role(self, user_id, role):
        role = self.clean_roles([role])[0]
        with self._lock:
            user = self.get_user(user_id)
            if role not in user.available_roles:
                raise ValidationError("Role not assigned to this user")
            user = replace(user, role=role)
            self._users[user.id] = user
        return user

    # ==================== Locations ====================
    def list_locations(self, include_inactive=False):
        locations = sorted(self._locations.values(), key=lambda l: l.name)
        if include_inactive:
            return locations
        return [l for l in locations if l.active]

    def _get_location(self, location_id):
        try:
            return self._locations[str(location_id)]
        except KeyError:
            raise NotFoundError("Location not found") from None

    def create_location(self, name, type, address=None):
        if not (name or "").strip():
            raise ValidationError("Name is required")
        location = PayasoLocation(
            id=self._next_id("l"), name=name.strip(),
            type=self.clean_location_type(type), address=address, active=True,
        )
        with self._lock:
            self._locations[location.id] = location
        return location

    def update_location(self, location_id, data):
        with self._lock:
            location = self._get_location(location_id)
            changes = {k: data[k] for k in ("name", "type", "address", "active") if k in data}
            if "type" in changes:
                self.clean_location_type(changes["type"])
            location = replace(location, **changes)
            self._locations[location.id] = location
        return location

    def set_location_active(self, location_id, active):
        return self.update_location(location_id, {"active": bool(active)})

    # ==================== Events ====================
    def _view(self, event, viewer_id=None):
        regs = {uid: r for (eid, uid), r in self._registrations.items() if eid == event.id}
        taken = {bucket: 0 for bucket in policy.BUCKETS}
        for reg in regs.values():
            if reg["bucket"] in taken:
                taken[reg["bucket"]] += 1
        mine = regs.get(str(viewer_id)) if viewer_id is not None else None
        return replace(
            event,
            attendees=RoleCapacity(**taken),
            total_attendees=len(regs),
            registered=mine is not None,
            current_user_status=AttendanceStatus(_status(mine)) if mine else None,
        )

    def _get_event(self, event_id):
        try:
            return self._events[str(event_id)]
        except KeyError:
            raise NotFoundError("Event not found") from None

    def list_events(self, viewer_id=None):
        with self._lock:
            events = [self._view(e, viewer_id) for e in self._events.values()]
        return sorted(events, key=lambda e: e.date)

    def get_event(self, event_id, viewer_id=None):
        with self._lock:
            return self._view(self._get_event(event_id), viewer_id)

    def create_event(self, data):
        clean = self.clean_new_event(data)
        location = clean["location"]
        if clean["location_id"]:
            location = self._get_location(clean["location_id"]).name
        event = PayasoEvent(
            id=self._next_id("e"),
            type=clean["type"],
            title=clean["title"],
            date=clean["date"],
            location=location or "Ubicación por definir",
            location_id=clean["location_id"],
            description=clean["description"],
            capacity=clean["capacity"],
            total_capacity=clean["total_capacity"],
        )
        with self._lock:
            self._events[event.id] = event
        return self._view(event)

    def register(self, event_id, user_id, role):
        with self._lock:
            event = self._get_event(event_id)
            self.get_user(user_id)
            key = (event.id, str(user_id))
            if key in self._registrations:
                return
            # re-checked against the stored registrations
            if is_full(self._view(event, user_id), role):
                raise CapacityFullError()
            bucket = None if event.type == EventType.training else policy.bucket_for(role)
            self._registrations[key] = {"bucket": bucket, "attended": None}

    def unregister(self, event_id, user_id):
        with self._lock:
            self._get_event(event_id)
            self._registrations.pop((str(event_id), str(user_id)), None)

    def list_attendees(self, event_id):
        with self._lock:
            event = self._get_event(event_id)
            rows = []
            for (eid, uid), reg in self._registrations.items():
                if eid != event.id or uid not in self._users:
                    continue
                user = self._users[uid]
                rows.append(AttendanceRecord(
                    user_id=uid,
                    user_full_name=user.full_name,
                    user_role=_bucket_label(reg["bucket"]),
                    user_photo=user.photo_url,
                    status=AttendanceStatus(_status(reg)),
                ))
        return sorted(rows, key=lambda r: r.user_full_name)

    def mark_attendance(self, event_id, user_id, status):
        status = AttendanceStatus(status)
        with self._lock:
            self._get_event(event_id)
            reg = self._registrations.get((str(event_id), str(user_id)))
            if reg is None:
                raise NotFoundError("User is not registered for this event")
            reg["attended"] = status == AttendanceStatus.attended

    # ==================== Payments ====================
    def list_payments(self, user_id=None):
        payments = [p for p in self._payments if user_id is None or p.user_id == str(user_id)]
        # pending first, then most recent
        payments = sorted(payments, key=lambda p: p.date_paid or date.min, reverse=True)
        return sorted(payments, key=lambda p: p.status != PaymentStatus.pending_approval)

    def create_payment(self, data):
        clean = self.clean_new_payment(data)
        self.get_user(clean["user_id"])
        payment = Payment(
            id=self._next_id("p"),
            date_paid=date.today() if clean["status"] == PaymentStatus.paid else None,
            **clean,
        )
        with self._lock:
            self._payments.insert(0, payment)
        return payment

    def update_payment_status(self, payment_id, status):
        with self._lock:
            idx = next((i for i, p in enumerate(self._payments) if p.id == str(payment_id)), None)
            if idx is None:
                raise NotFoundError("Payment not found")
            current = self._payments[idx]
            status = self.check_payment_transition(current.status, status)
            updated = replace(
                current, status=status,
                date_paid=current.date_paid or (date.today() if status == PaymentStatus.paid else None),
            )
            self._payments[idx] = updated
        return updated

    # ==================== Stats & graduation ====================
    def get_user_stats(self, user_id):
        with self._lock:
            self.get_user(user_id)
            trainings = visits = 0
            for (eid, uid), reg in self._registrations.items():
                if uid != str(user_id) or reg["attended"] is not True or eid not in self._events:
                    continue
                if self._events[eid].type == EventType.training:
                    trainings += 1
                else:
                    visits += 1
            requested = any(
                g.user_id == str(user_id) and g.status == GraduationStatus.pending
                for g in self._graduation.values()
            )
        return UserStats(
            training_hours=trainings * self.settings.hours_per_training,
            visits_count=visits,
            graduation_requested=requested,
        )

    def create_graduation_request(self, user_id, stats):
        with self._lock:
            user = self.get_user(user_id)
            request = GraduationRequest(
                id=self._next_id("g"),
                user_id=user.id,
                user_full_name=user.full_name,
                user_photo=user.photo_url,
                stats=replace(stats, graduation_requested=True),
                status=GraduationStatus.pending,
                request_date=datetime.now(),
            )
            self._graduation[request.id] = request
        return request

    def list_graduation_requests(self, status=GraduationStatus.pending):
        requests = [g for g in self._graduation.values() if status is None or g.status == status]
        return sorted(requests, key=lambda g: g.request_date)

    def _get_graduation(self, request_id):
        try:
            return self._graduation[str(request_id)]
        except KeyError:
            raise NotFoundError("Graduation request not found") from None

    def approve_graduation(self, request_id):
        with self._lock:
            request = self._get_graduation(request_id)
            self.check_graduation_pending(request.status)
            user = self.get_user(request.user_id)
            roles = promoted_roles(user.available_roles)
            active = Role.dr_payaso if user.role == Role.recruit else user.role
            self._users[user.id] = replace(user, available_roles=roles, role=active)
            request = replace(request, status=GraduationStatus.approved)
            self._graduation[request.id] = request
        return request

    def reject_graduation(self, request_id):
        with self._lock:
            request = self._get_graduation(request_id)
            self.check_graduation_pending(request.status)
            request = replace(request, status=GraduationStatus.rejected)
            self._graduation[request.id] = request
        return request

    # ==================== Chat & messaging ====================
    def list_event_messages(self, event_id, since=None):
        self._get_event(event_id)
        return [
            m for m in self._messages
            if m.event_id == str(event_id) and (since is None or m.timestamp > since)
        ]

    def send_event_message(self, event_id, user_id, text):
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is required")
        with self._lock:
            self._get_event(event_id)
            user = self.get_user(user_id)
            message = ChatMessage(
                id=self._next_id("m"),
                event_id=str(event_id),
                user_id=user.id,
                user_name=user.display_name,
                user_photo=user.display_photo,
                text=text,
                timestamp=datetime.now(),
            )
            self._messages.append(message)
        return message

    def send_mass_message(self, target_roles, subject, body, sent_by="admin"):
        roles, subject, body = self.clean_mass_message(target_roles, subject, body)
        message = SystemMessage(
            id=self._next_id("msg-"), subject=subject, body=body,
            target_roles=roles, sent_at=datetime.now(), sent_by=sent_by,
        )
        with self._lock:
            self._system_messages.append(message)
        return message

    def list_inbox(self, user):
        inbox = [
            m for m in self._system_messages
            if set(m.target_roles) & set(user.available_roles)
        ]
        return sorted(inbox, key=lambda m: m.sent_at, reverse=True)


def _status(reg):
    if reg["attended"] is True:
        return "attended"
    if reg["attended"] is False:
        return "absent"
    return "registered"


def _bucket_label(bucket):
    if bucket is None:
        return "Asistente"
    return Role(bucket).label
