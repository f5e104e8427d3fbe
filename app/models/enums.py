"""Valeurs énumérées du domaine, stockées en clair dans des colonnes String."""

from enum import Enum


class PatientStatut(str, Enum):
    ACTIF = "ACTIF"
    INACTIF = "INACTIF"
    ARCHIVE = "ARCHIVE"


class Sexe(str, Enum):
    HOMME = "HOMME"
    FEMME = "FEMME"


class TypeIntervention(str, Enum):
    POSE_IMPLANT = "POSE_IMPLANT"
    GREFFE_OSSEUSE = "GREFFE_OSSEUSE"
    SINUS_LIFT = "SINUS_LIFT"
    EXTRACTION_IMPLANT_IMMEDIATE = "EXTRACTION_IMPLANT_IMMEDIATE"
    REPRISE_IMPLANT = "REPRISE_IMPLANT"
    CHIRURGIE_GUIDEE = "CHIRURGIE_GUIDEE"
    POSE_PROTHESE = "POSE_PROTHESE"
    DEPOSE_IMPLANT = "DEPOSE_IMPLANT"
    DEPOSE_PROTHESE = "DEPOSE_PROTHESE"


class TypeChirurgieTemps(str, Enum):
    UN_TEMPS = "UN_TEMPS"
    DEUX_TEMPS = "DEUX_TEMPS"


class TypeChirurgieApproche(str, Enum):
    LAMBEAU = "LAMBEAU"
    FLAPLESS = "FLAPLESS"


class TypeMiseEnCharge(str, Enum):
    IMMEDIATE = "IMMEDIATE"
    PRECOCE = "PRECOCE"
    DIFFEREE = "DIFFEREE"


class TypeImplant(str, Enum):
    IMPLANT = "IMPLANT"
    MINI_IMPLANT = "MINI_IMPLANT"
    PROTHESE = "PROTHESE"


class TypeProthese(str, Enum):
    VISSEE = "VISSEE"
    SCELLEE = "SCELLEE"


class PositionImplant(str, Enum):
    CRESTAL = "CRESTAL"
    SOUS_CRESTAL = "SOUS_CRESTAL"
    SUPRA_CRESTAL = "SUPRA_CRESTAL"


class TypeOs(str, Enum):
    D1 = "D1"
    D2 = "D2"
    D3 = "D3"
    D4 = "D4"


class StatutImplant(str, Enum):
    EN_SUIVI = "EN_SUIVI"
    SUCCES = "SUCCES"
    COMPLICATION = "COMPLICATION"
    ECHEC = "ECHEC"


class AppointmentType(str, Enum):
    CONSULTATION = "CONSULTATION"
    SUIVI = "SUIVI"
    CHIRURGIE = "CHIRURGIE"
    CONTROLE = "CONTROLE"
    URGENCE = "URGENCE"
    AUTRE = "AUTRE"


class AppointmentStatus(str, Enum):
    UPCOMING = "UPCOMING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class FlagLevel(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"


class FlagType(str, Enum):
    ISQ_LOW = "ISQ_LOW"
    ISQ_DECLINING = "ISQ_DECLINING"
    LOW_SUCCESS_RATE = "LOW_SUCCESS_RATE"
    NO_RECENT_ISQ = "NO_RECENT_ISQ"
    NO_POSTOP_FOLLOWUP = "NO_POSTOP_FOLLOWUP"
    NO_RECENT_APPOINTMENT = "NO_RECENT_APPOINTMENT"
    FOLLOWUP_2M = "FOLLOWUP_2M"
    FOLLOWUP_4M = "FOLLOWUP_4M"
    FOLLOWUP_6M = "FOLLOWUP_6M"
    FOLLOWUP_12M = "FOLLOWUP_12M"
    IMPLANT_NO_OPERATION = "IMPLANT_NO_OPERATION"
    MISSING_DOCUMENT = "MISSING_DOCUMENT"
    INCOMPLETE_DATA = "INCOMPLETE_DATA"


class FlagEntityType(str, Enum):
    PATIENT = "PATIENT"
    OPERATION = "OPERATION"
    IMPLANT = "IMPLANT"


class SavedFilterPageType(str, Enum):
    PATIENTS = "patients"
    IMPLANTS = "implants"
    ACTES = "actes"
    PROTHESES = "protheses"


class NotificationKind(str, Enum):
    ALERT = "ALERT"
    REMINDER = "REMINDER"
    ACTIVITY = "ACTIVITY"
    SYSTEM = "SYSTEM"


class NotificationSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditEntityType(str, Enum):
    PATIENT = "PATIENT"
    OPERATION = "OPERATION"
    APPOINTMENT = "APPOINTMENT"
