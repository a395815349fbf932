"""
seed.py
Demo dataset for the in-memory backend (and `flask seed-demo`).
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from payaso.domain import (
    ChatMessage, EventType, GraduationRequest, GraduationStatus, PayasoEvent,
    PayasoLocation, Payment, PaymentStatus, Role, RoleCapacity, User, UserStats,
)


def demo_users():
    return [
        User(
            id="u1", email="dr.risas@payaso.org", cedula="1-1111-1111",
            full_name="Juan Pérez", phone="8888-8888", whatsapp="8888-8888",
            artistic_name="Dr. Risas",
            role=Role.dr_payaso, available_roles=(Role.dr_payaso,),
            valid_until="2025-12-31", admin_notes="Líder de equipo muy activo.",
            skills="Globolexia, Magia básica",
        ),
        User(
            id="u2", email="ana.admin@payaso.org", cedula="2-2222-2222",
            full_name="Ana Gómez", phone="9999-9999", whatsapp="9999-9999",
            role=Role.admin, available_roles=(Role.admin, Role.board),
            is_super_admin=True, valid_until="2030-01-01",
            admin_notes="Encargada de logística.", skills="Contabilidad, Excel",
            exempt_from_fees=True,
        ),
        User(
            id="u3", email="pepito.recluta@payaso.org", cedula="3-3333-3333",
            full_name="Pepito López", phone="7777-7777", whatsapp="7777-7777",
            role=Role.recruit, available_roles=(Role.recruit,),
            valid_until="2024-12-31", admin_notes="Falta entregar comprobante de pago mayo.",
            skills="Tocar guitarra",
        ),
        User(
            id="u4", email="foto.carla@payaso.org", cedula="4-4444-4444",
            full_name="Carla Zoom", phone="6666-6666", whatsapp="6666-6666",
            role=Role.photographer, available_roles=(Role.photographer, Role.volunteer),
            valid_until="2025-06-30", skills="Fotografía profesional, Edición",
            exempt_from_fees=True,
        ),
        User(
            id="u5", email="dr.chiflado@payaso.org", cedula="5-5555-5555",
            full_name="Roberto Méndez", phone="8899-0011", whatsapp="8899-0011",
            artistic_name="Dr. Chiflado",
            role=Role.dr_payaso, available_roles=(Role.dr_payaso, Role.admin, Role.photographer),
            is_super_admin=True, valid_until="2030-12-31",
            admin_notes="Miembro fundador. Multitasking.", skills="Malabares, Liderazgo",
        ),
    ]


def demo_locations():
    return [
        PayasoLocation(id="l1", name="Hospital Nacional de Niños", type="hospital", address="San José, Centro"),
        PayasoLocation(id="l2", name="Hogar de Ancianos San Pedro", type="albergue", address="San Pedro, Montes de Oca"),
        PayasoLocation(id="l3", name="Hospital San Juan de Dios", type="hospital", address="San José, Paseo Colón"),
        PayasoLocation(id="l4", name="Albergue Sueños de Esperanza", type="albergue", address="Desamparados"),
        PayasoLocation(id="l5", name="Sede Central - Sala de Ensayos", type="otro", address="Barrio Escalante"),
    ]


def demo_events(today: date):
    def at(days, hour):
        return datetime.combine(today + timedelta(days=days), time(hour, 0))

    return [
        PayasoEvent(
            id="e1", type=EventType.visit, title="Visita Hospital de Niños", date=at(-20, 9),
            location="Hospital Nacional de Niños", location_id="l1",
            description="Visita general. Prioridad Dr. Payaso. Fotógrafos bienvenidos.",
            capacity=RoleCapacity(recruit=2, dr_payaso=4, photographer=1, volunteer=1),
            total_capacity=8,
        ),
        PayasoEvent(
            id="e2", type=EventType.training, title="Taller de Improvisación", date=at(5, 18),
            location="Sede Central - Sala de Ensayos", location_id="l5",
            description="Entrenamiento para todos.",
            capacity=RoleCapacity(recruit=10, dr_payaso=10),
            total_capacity=20,
        ),
        PayasoEvent(
            id="e3", type=EventType.visit, title="Visita Geriátrico San Pedro", date=at(7, 10),
            location="Hogar de Ancianos San Pedro", location_id="l2",
            description="Solo para Drs. Payaso y Reclutas.",
            capacity=RoleCapacity(recruit=3, dr_payaso=3),
            total_capacity=6,
        ),
        PayasoEvent(
            id="e4", type=EventType.training, title="Inducción Nuevos Ingresos", date=at(14, 18),
            location="Sede Central - Sala de Ensayos", location_id="l5",
            description="EXCLUSIVO RECLUTAS.",
            capacity=RoleCapacity(recruit=30),
            total_capacity=30,
        ),
    ]


def demo_registrations():
    """(event_id, user_id) -> bucket and attendance (None = not taken yet)."""
    return {
        ("e1", "u3"): {"bucket": "recruit", "attended": True},
        ("e1", "u1"): {"bucket": "dr_payaso", "attended": True},
        ("e1", "u5"): {"bucket": "dr_payaso", "attended": None},
        ("e1", "u4"): {"bucket": "photographer", "attended": False},
        ("e2", "u1"): {"bucket": None, "attended": None},
        ("e2", "u3"): {"bucket": None, "attended": None},
        ("e3", "u3"): {"bucket": "recruit", "attended": None},
        ("e3", "u1"): {"bucket": "dr_payaso", "attended": None},
        ("e4", "u3"): {"bucket": None, "attended": None},
    }


def demo_payments():
    return [
        Payment(id="p1", user_id="u1", amount=5000, month="Enero 2024",
                date_paid=date(2024, 1, 5), status=PaymentStatus.paid),
        Payment(id="p2", user_id="u1", amount=5000, month="Febrero 2024",
                date_paid=date(2024, 2, 3), status=PaymentStatus.paid),
        Payment(id="p3", user_id="u1", amount=5000, month="Marzo 2024",
                date_paid=date(2024, 3, 10), status=PaymentStatus.paid),
        Payment(id="p4", user_id="u1", amount=5000, month="Abril 2024",
                status=PaymentStatus.pending_approval),
    ]


def demo_graduation_requests(now: datetime):
    return [
        GraduationRequest(
            id="g1", user_id="u3", user_full_name="Pepito López", user_photo="",
            stats=UserStats(training_hours=20, visits_count=5, graduation_requested=True),
            status=GraduationStatus.pending, request_date=now,
        ),
    ]


def demo_messages(now: datetime):
    return [
        ChatMessage(
            id="m1", event_id="e1", user_id="u1", user_name="Dr. Risas", user_photo="",
            text="¡Hola equipo! ¿Quién lleva los globos?",
            timestamp=now - timedelta(hours=1),
        ),
    ]
