# Modèles SQLAlchemy de Cassius (importés par Alembic pour l'autogénération)

from .appointment import Appointment
from .audit_log import AuditLog
from .flag import Flag
from .implant import Implant, SurgeryImplant
from .implant_status import ImplantStatusHistory, ImplantStatusReason
from .notification import Notification
from .operation import Operation
from .patient import Patient
from .saved_filter import SavedFilter

__all__ = [
    "Appointment",
    "AuditLog",
    "Flag",
    "Implant",
    "ImplantStatusHistory",
    "ImplantStatusReason",
    "Notification",
    "Operation",
    "Patient",
    "SavedFilter",
    "SurgeryImplant",
]
