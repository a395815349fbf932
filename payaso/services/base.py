"""
base.py
The data-access contract shared by the in-memory and the SQL backends.

Both backends return the plain records of ``payaso.domain``. Business rules
(capacity, compliance, graduation thresholds) are applied by the callers;
the only rule enforced here is uniqueness of a registration.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime

from payaso.domain import (
    EventType, GraduationStatus, PaymentStatus, Role, RoleCapacity,
)
from payaso.domain.types import LOCATION_TYPES
from payaso.errors import InvalidTransition, ValidationError

EMAIL_REGEX = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class ServiceSettings:
    def __init__(self, hours_per_training=2, training_default_capacity=50,
                 password_min_length=6, demo_password="payaso123"):
        self.hours_per_training = hours_per_training
        self.training_default_capacity = training_default_capacity
        self.password_min_length = password_min_length
        self.demo_password = demo_password

    @classmethod
    def from_config(cls, config):
        return cls(
            hours_per_training=config.get("HOURS_PER_TRAINING", 2),
            training_default_capacity=config.get("TRAINING_DEFAULT_CAPACITY", 50),
            password_min_length=config.get("PASSWORD_MIN_LENGTH", 6),
            demo_password=config.get("DEMO_PASSWORD", "payaso123"),
        )


class DataService(ABC):
    name = "base"

    def __init__(self, settings: ServiceSettings | None = None):
        self.settings = settings or ServiceSettings()

    # ==================== Auth ====================
    @abstractmethod
    def authenticate(self, identifier, password): ...

    @abstractmethod
    def change_password(self, user_id, new_password, confirm_password=None): ...

    # ==================== Users ====================
    @abstractmethod
    def get_user(self, user_id): ...

    @abstractmethod
    def list_users(self): ...

    @abstractmethod
    def create_user(self, data): ...

    @abstractmethod
    def update_user_status(self, user_id, status): ...

    @abstractmethod
    def update_user_profile(self, user_id, data): ...

    @abstractmethod
    def replace_user_roles(self, user_id, roles, artistic_name=None, character_photo_url=None): ...

    @abstractmethod
    def set_active_role(self, user_id, role): ...

    # ==================== Locations ====================
    @abstractmethod
    def list_locations(self, include_inactive=False): ...

    @abstractmethod
    def create_location(self, name, type, address=None): ...

    @abstractmethod
    def update_location(self, location_id, data): ...

    @abstractmethod
    def set_location_active(self, location_id, active): ...

    # ==================== Events ====================
    @abstractmethod
    def list_events(self, viewer_id=None): ...

    @abstractmethod
    def get_event(self, event_id, viewer_id=None): ...

    @abstractmethod
    def create_event(self, data): ...

    @abstractmethod
    def register(self, event_id, user_id, role): ...

    @abstractmethod
    def unregister(self, event_id, user_id): ...

    @abstractmethod
    def list_attendees(self, event_id): ...

    @abstractmethod
    def mark_attendance(self, event_id, user_id, status): ...

    # ==================== Payments ====================
    @abstractmethod
    def list_payments(self, user_id=None): ...

    @abstractmethod
    def create_payment(self, data): ...

    @abstractmethod
    def update_payment_status(self, payment_id, status): ...

    # ==================== Stats & graduation ====================
    @abstractmethod
    def get_user_stats(self, user_id): ...

    @abstractmethod
    def create_graduation_request(self, user_id, stats): ...

    @abstractmethod
    def list_graduation_requests(self, status=GraduationStatus.pending): ...

    @abstractmethod
    def approve_graduation(self, request_id): ...

    @abstractmethod
    def reject_graduation(self, request_id): ...

    # ==================== Chat & messaging ====================
    @abstractmethod
    def list_event_messages(self, event_id, since=None): ...

    @abstractmethod
    def send_event_message(self, event_id, user_id, text): ...

    @abstractmethod
    def send_mass_message(self, target_roles, subject, body, sent_by="admin"): ...

    @abstractmethod
    def list_inbox(self, user): ...

    # ==================== Shared validation ====================
    def validate_password(self, password, confirm_password=None):
        if not password or len(password) < self.settings.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.settings.password_min_length} characters"
            )
        if confirm_password is not None and password != confirm_password:
            raise ValidationError("Passwords do not match")

    def clean_new_user(self, data):
        email = (data.get("email") or "").strip().lower()
        full_name = (data.get("full_name") or "").strip()
        if not email or not full_name:
            raise ValidationError("Email and full name are required")
        if not re.match(EMAIL_REGEX, email):
            raise ValidationError("Invalid email format")
        self.validate_password(data.get("password"))
        try:
            role = Role.parse(data.get("role") or Role.recruit)
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
        return {
            "email": email,
            "full_name": full_name,
            "password": data["password"],
            "cedula": (data.get("cedula") or "").strip(),
            "phone": (data.get("phone") or "").strip(),
            "photo_url": data.get("photo_url") or "",
            "artistic_name": data.get("artistic_name") if role == Role.dr_payaso else None,
            "role": role,
        }

    @staticmethod
    def clean_roles(roles):
        try:
            parsed = tuple(dict.fromkeys(Role.parse(r) for r in roles or ()))
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
        if not parsed:
            raise ValidationError("A user needs at least one role")
        return parsed

    @staticmethod
    def clean_status(status):
        if status not in ("active", "inactive"):
            raise ValidationError("Status must be 'active' or 'inactive'")
        return status

    @staticmethod
    def clean_location_type(type):
        if type not in LOCATION_TYPES:
            raise ValidationError(f"Location type must be one of {', '.join(LOCATION_TYPES)}")
        return type

    def clean_new_event(self, data):
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("Title is required")
        try:
            event_type = EventType(data.get("type"))
        except ValueError:
            raise ValidationError("Event type must be 'training' or 'visit'") from None
        starts_at = data.get("date")
        if not isinstance(starts_at, datetime):
            raise ValidationError("Event date and time are required")
        capacity = data.get("capacity") or RoleCapacity()
        if min(capacity.to_dict().values()) < 0:
            raise ValidationError("Capacity cannot be negative")
        total = data.get("total_capacity") or 0
        if event_type == EventType.training and not total:
            total = capacity.total or self.settings.training_default_capacity
        return {
            "title": title,
            "type": event_type,
            "date": starts_at,
            "location": (data.get("location") or "").strip(),
            "location_id": data.get("location_id") or None,
            "description": data.get("description") or "",
            "capacity": capacity,
            "total_capacity": capacity.total if event_type == EventType.visit else total,
            "created_by": data.get("created_by"),
        }

    @staticmethod
    def clean_new_payment(data):
        if not data.get("user_id"):
            raise ValidationError("User is required")
        try:
            amount = float(data.get("amount"))
        except (TypeError, ValueError):
            raise ValidationError("Amount must be numeric") from None
        if amount <= 0:
            raise ValidationError("Amount must be positive")
        month = (data.get("month") or "").strip()
        if not month:
            raise ValidationError("Month is required")
        try:
            status = PaymentStatus(data.get("status") or PaymentStatus.pending_approval)
        except ValueError:
            raise ValidationError("Unknown payment status") from None
        if status == PaymentStatus.rejected:
            raise ValidationError("A new payment cannot be rejected")
        reference = (data.get("reference_id") or "").strip() or None
        notes = data.get("notes") or ""
        if reference:
            notes = f"Ref: {reference}. {notes}".strip()
        return {
            "user_id": str(data["user_id"]),
            "amount": amount,
            "month": month,
            "status": status,
            "reference_id": reference,
            "receipt_url": data.get("receipt_url"),
            "notes": notes or None,
        }

    @staticmethod
    def check_payment_transition(current, new):
        try:
            new = PaymentStatus(new)
        except ValueError:
            raise ValidationError("Unknown payment status") from None
        if new == PaymentStatus.pending_approval:
            raise InvalidTransition("A payment cannot go back to pending approval")
        if current != PaymentStatus.pending_approval:
            raise InvalidTransition(f"Payment is already {PaymentStatus(current).value}")
        return new

    @staticmethod
    def check_graduation_pending(current):
        if current != GraduationStatus.pending:
            raise InvalidTransition(f"Request is already {GraduationStatus(current).value}")

    @staticmethod
    def clean_mass_message(target_roles, subject, body):
        if not target_roles:
            raise ValidationError("Select at least one group of recipients")
        if not (subject or "").strip() or not (body or "").strip():
            raise ValidationError("Subject and body are required")
        return DataService.clean_roles(target_roles), subject.strip(), body.strip()
