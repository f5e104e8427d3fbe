"""Registres des champs filtrables par page.

Chaque page (patients, actes, implants posés, catalogue d'implants,
prothèses) expose ses propres champs avec leur type et les opérateurs
proposés dans le tiroir de filtres.
"""

from dataclasses import dataclass
from enum import Enum

from app.filters.types import FilterOperator as Op


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    SELECT = "select"


class FilterPage(str, Enum):
    PATIENTS = "patients"
    ACTES = "actes"
    IMPLANTS = "implants"
    PROTHESES = "protheses"
    SURGERY_IMPLANTS = "surgery_implants"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    type: FieldType
    operators: tuple[Op, ...]
    options: tuple[tuple[str, str], ...] = ()
    category: str | None = None

    @property
    def option_values(self) -> frozenset[str]:
        return frozenset(value for value, _ in self.options)

    @property
    def default_operator(self) -> Op:
        """Premier opérateur proposé, utilisé quand le champ d'une règle change."""
        return self.operators[0]


TEXT_OPS = (Op.CONTAINS, Op.EQUALS, Op.NOT_CONTAINS)
NUMBER_OPS = (
    Op.EQUALS,
    Op.GREATER_THAN,
    Op.LESS_THAN,
    Op.GREATER_THAN_OR_EQUAL,
    Op.LESS_THAN_OR_EQUAL,
    Op.BETWEEN,
)
NULLABLE_NUMBER_OPS = NUMBER_OPS + (Op.IS_NULL, Op.IS_NOT_NULL)
DATE_COMPARE_OPS = NUMBER_OPS
RELATIVE_DATE_OPS = (
    Op.AFTER,
    Op.BEFORE,
    Op.LAST_N_DAYS,
    Op.LAST_N_MONTHS,
    Op.LAST_N_YEARS,
    Op.BETWEEN,
)
SELECT_OPS = (Op.EQUALS, Op.NOT_EQUALS)
BOOLEAN_OPS = (Op.IS_TRUE, Op.IS_FALSE)

PATIENT_STATUT_OPTIONS = (("ACTIF", "Actif"), ("INACTIF", "Inactif"), ("ARCHIVE", "Archivé"))

IMPLANT_STATUT_OPTIONS = (
    ("EN_SUIVI", "En suivi"),
    ("SUCCES", "Succès"),
    ("COMPLICATION", "Complication"),
    ("ECHEC", "Échec"),
)

TYPE_INTERVENTION_OPTIONS = (
    ("POSE_IMPLANT", "Pose d'implant"),
    ("GREFFE_OSSEUSE", "Greffe osseuse"),
    ("SINUS_LIFT", "Sinus lift"),
    ("EXTRACTION_IMPLANT_IMMEDIATE", "Extraction + implant immédiat"),
    ("REPRISE_IMPLANT", "Reprise d'implant"),
    ("CHIRURGIE_GUIDEE", "Chirurgie guidée"),
    ("POSE_PROTHESE", "Pose de prothèse"),
    ("DEPOSE_IMPLANT", "Dépose d'implant"),
    ("DEPOSE_PROTHESE", "Dépose de prothèse"),
)

TEMPS_OPTIONS = (("UN_TEMPS", "1 temps"), ("DEUX_TEMPS", "2 temps"))
APPROCHE_OPTIONS = (("LAMBEAU", "Lambeau"), ("FLAPLESS", "Flapless"))
TYPE_PROTHESE_OPTIONS = (("VISSEE", "Vissée"), ("SCELLEE", "Scellée"))


def _registry(*specs: FieldSpec) -> dict[str, FieldSpec]:
    return {spec.name: spec for spec in specs}


PATIENT_FIELDS = _registry(
    FieldSpec("patient_nom", "Nom du patient", FieldType.TEXT, TEXT_OPS, category="patient"),
    FieldSpec("patient_prenom", "Prénom du patient", FieldType.TEXT, TEXT_OPS, category="patient"),
    FieldSpec(
        "patient_dateNaissance",
        "Date de naissance",
        FieldType.DATE,
        (Op.BEFORE, Op.AFTER, Op.BETWEEN),
        category="patient",
    ),
    FieldSpec("patient_age", "Âge", FieldType.NUMBER, NUMBER_OPS, category="patient"),
    FieldSpec(
        "patient_statut",
        "Statut patient",
        FieldType.SELECT,
        SELECT_OPS,
        options=PATIENT_STATUT_OPTIONS,
        category="patient",
    ),
    FieldSpec(
        "patient_derniereVisite",
        "Dernière visite",
        FieldType.DATE,
        RELATIVE_DATE_OPS[:-1],
        category="patient",
    ),
    FieldSpec(
        "patient_implantCount", "Nombre d'implants", FieldType.NUMBER, NUMBER_OPS, category="patient"
    ),
    FieldSpec(
        "surgery_hasSurgery", "A une chirurgie", FieldType.BOOLEAN, BOOLEAN_OPS, category="surgery"
    ),
    FieldSpec(
        "surgery_dateOperation",
        "Date d'opération",
        FieldType.DATE,
        RELATIVE_DATE_OPS,
        category="surgery",
    ),
    FieldSpec(
        "surgery_typeIntervention",
        "Type d'intervention",
        FieldType.SELECT,
        SELECT_OPS,
        options=TYPE_INTERVENTION_OPTIONS,
        category="surgery",
    ),
    FieldSpec(
        "surgery_successRate",
        "Taux de réussite chirurgie (%)",
        FieldType.NUMBER,
        NUMBER_OPS,
        category="surgery",
    ),
    FieldSpec("implant_marque", "Marque d'implant", FieldType.TEXT, TEXT_OPS, category="implant"),
    FieldSpec(
        "implant_reference",
        "Référence implant",
        FieldType.TEXT,
        (Op.CONTAINS, Op.EQUALS),
        category="implant",
    ),
    FieldSpec(
        "implant_siteFdi", "Site FDI", FieldType.TEXT, (Op.EQUALS, Op.CONTAINS), category="implant"
    ),
    FieldSpec(
        "implant_statut",
        "Statut implant",
        FieldType.SELECT,
        SELECT_OPS,
        options=IMPLANT_STATUT_OPTIONS,
        category="implant",
    ),
    FieldSpec(
        "implant_datePose", "Date de pose", FieldType.DATE, RELATIVE_DATE_OPS, category="implant"
    ),
    FieldSpec(
        "implant_successRate",
        "Taux de réussite implant (%)",
        FieldType.NUMBER,
        NUMBER_OPS,
        category="implant",
    ),
)

ACTE_FIELDS = _registry(
    FieldSpec("dateOperation", "Date d'opération", FieldType.DATE, DATE_COMPARE_OPS),
    FieldSpec(
        "typeIntervention",
        "Type d'intervention",
        FieldType.SELECT,
        SELECT_OPS,
        options=TYPE_INTERVENTION_OPTIONS,
    ),
    FieldSpec(
        "typeChirurgieTemps",
        "Temps chirurgical",
        FieldType.SELECT,
        SELECT_OPS,
        options=TEMPS_OPTIONS,
    ),
    FieldSpec(
        "typeChirurgieApproche",
        "Approche chirurgicale",
        FieldType.SELECT,
        SELECT_OPS,
        options=APPROCHE_OPTIONS,
    ),
    FieldSpec("greffeOsseuse", "Greffe osseuse", FieldType.BOOLEAN, BOOLEAN_OPS),
    FieldSpec("implantCount", "Nombre d'implants", FieldType.NUMBER, NUMBER_OPS),
    FieldSpec("successRate", "Taux de réussite (%)", FieldType.NUMBER, NUMBER_OPS),
)

SURGERY_IMPLANT_FIELDS = _registry(
    FieldSpec("datePose", "Date de pose", FieldType.DATE, DATE_COMPARE_OPS),
    FieldSpec(
        "statut", "Statut", FieldType.SELECT, SELECT_OPS, options=IMPLANT_STATUT_OPTIONS
    ),
    FieldSpec("marque", "Marque", FieldType.TEXT, (Op.EQUALS, Op.CONTAINS)),
    FieldSpec("siteFdi", "Position (Site FDI)", FieldType.TEXT, (Op.EQUALS, Op.CONTAINS)),
    FieldSpec("isqPose", "ISQ Pose", FieldType.NUMBER, NULLABLE_NUMBER_OPS),
    FieldSpec("isq2m", "ISQ 2 mois", FieldType.NUMBER, NULLABLE_NUMBER_OPS),
    FieldSpec("isq3m", "ISQ 3 mois", FieldType.NUMBER, NULLABLE_NUMBER_OPS),
    FieldSpec("isq6m", "ISQ 6 mois", FieldType.NUMBER, NULLABLE_NUMBER_OPS),
    FieldSpec("diametre", "Diamètre (mm)", FieldType.NUMBER, NUMBER_OPS),
    FieldSpec("longueur", "Longueur (mm)", FieldType.NUMBER, NUMBER_OPS),
)

CATALOG_TEXT_OPS = (Op.CONTAINS, Op.EQUALS, Op.NOT_CONTAINS, Op.NOT_EQUALS)

IMPLANT_FIELDS = _registry(
    FieldSpec("marque", "Marque", FieldType.TEXT, CATALOG_TEXT_OPS),
    FieldSpec("referenceFabricant", "Référence fabricant", FieldType.TEXT, TEXT_OPS),
    FieldSpec("diametre", "Diamètre (mm)", FieldType.NUMBER, NUMBER_OPS),
    FieldSpec("longueur", "Longueur (mm)", FieldType.NUMBER, NUMBER_OPS),
    FieldSpec("lot", "Numéro de lot", FieldType.TEXT, (Op.CONTAINS, Op.EQUALS)),
    FieldSpec("poseCount", "Nombre de poses", FieldType.NUMBER, NUMBER_OPS),
    FieldSpec("successRate", "Taux de réussite (%)", FieldType.NUMBER, NUMBER_OPS),
)

PROTHESE_FIELDS = _registry(
    FieldSpec("marque", "Marque", FieldType.TEXT, CATALOG_TEXT_OPS),
    FieldSpec("referenceFabricant", "Référence fabricant", FieldType.TEXT, TEXT_OPS),
    FieldSpec(
        "typeProthese",
        "Type de prothèse",
        FieldType.SELECT,
        SELECT_OPS,
        options=TYPE_PROTHESE_OPTIONS,
    ),
    FieldSpec("poseCount", "Nombre de poses", FieldType.NUMBER, NUMBER_OPS),
)

REGISTRIES: dict[FilterPage, dict[str, FieldSpec]] = {
    FilterPage.PATIENTS: PATIENT_FIELDS,
    FilterPage.ACTES: ACTE_FIELDS,
    FilterPage.SURGERY_IMPLANTS: SURGERY_IMPLANT_FIELDS,
    FilterPage.IMPLANTS: IMPLANT_FIELDS,
    FilterPage.PROTHESES: PROTHESE_FIELDS,
}


def get_field(page: FilterPage | str, name: str) -> FieldSpec | None:
    return REGISTRIES[FilterPage(page)].get(name)


def fields_for(page: FilterPage | str) -> list[FieldSpec]:
    return list(REGISTRIES[FilterPage(page)].values())
