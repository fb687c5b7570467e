"""Database models."""

from app.models.appointments import appointment_treatments, appointments
from app.models.base import metadata
from app.models.clinics import clinics
from app.models.inventory import inventory
from app.models.patients import patients
from app.models.transactions import transactions
from app.models.treatments import treatments
from app.models.users import users

__all__ = [
    "appointment_treatments",
    "appointments",
    "clinics",
    "inventory",
    "metadata",
    "patients",
    "transactions",
    "treatments",
    "users",
]
