# diagnosticreport/conf.py
"""
Lecture de la configuration du module.

Les valeurs par défaut viennent de settings.FHIR_DIAGNOSTIC_REPORT ; les propriétés
globales (GlobalProperty) les surchargent à chaud, sans redémarrage.
"""
import logging

from django.conf import settings

from clinical.models import Concept, EncounterRole, EncounterType, GlobalProperty
from .constants import (
    CONCEPT_PROPERTIES, DEFAULT, ENCOUNTER_ROLE_PROPERTY, ORDER_TYPE_TO_HANDLER_MAP_PROPERTY, ReportField
)

logger = logging.getLogger(__name__)

DEFAULTS = {
    "HANDLERS": {
        "LAB": "LaboratoryHandler",
        DEFAULT: "DefaultDiagnosticReportHandler",
    },
    "ORDER_TYPE_TO_HANDLER_MAP": {
        "Test Order": "LAB",
        "Default": DEFAULT,
    },
    "CONCEPTS": {
        ReportField.NAME: "DIAGNOSTIC_REPORT_NAME",
        ReportField.STATUS: "DIAGNOSTIC_REPORT_STATUS",
        ReportField.RESULT: "DIAGNOSTIC_REPORT_RESULT",
        ReportField.PRESENTED_FORM: "DIAGNOSTIC_REPORT_PRESENTED_FORM",
        ReportField.IMAGING_STUDY: "DIAGNOSTIC_REPORT_IMAGING_STUDY",
    },
    "ENCOUNTER_ROLE": "Unknown",
    "GLOBAL_PROPERTY_CACHE_TIMEOUT": 300,
}


def get_setting(name):
    return getattr(settings, "FHIR_DIAGNOSTIC_REPORT", {}).get(name, DEFAULTS[name])


def get_report_concept_code(field):
    default = get_setting("CONCEPTS").get(field) or DEFAULTS["CONCEPTS"][field]
    return GlobalProperty.get_value(CONCEPT_PROPERTIES[field], default=default)


def get_report_concept(field):
    code = get_report_concept_code(field)
    concept = Concept.objects.filter(code=code).first()
    if concept is None:
        logger.warning("Concept '%s' configured for %s does not exist", code, field)
    return concept


def get_report_concept_ids(fields):
    codes = {field: get_report_concept_code(field) for field in fields}
    ids_by_code = dict(Concept.objects.filter(code__in=codes.values()).values_list("code", "id"))
    return {field: ids_by_code.get(code) for field, code in codes.items()}


def get_encounter_role_name():
    return GlobalProperty.get_value(ENCOUNTER_ROLE_PROPERTY, default=get_setting("ENCOUNTER_ROLE"))


def find_encounter_role():
    """Lecture seule : None si le rôle configuré n'existe pas encore."""
    return EncounterRole.objects.filter(name=get_encounter_role_name()).first()


def get_encounter_role():
    """Écriture : le rôle configuré est créé au besoin."""
    role, _ = EncounterRole.objects.get_or_create(name=get_encounter_role_name())
    return role


def get_encounter_type(name):
    return EncounterType.objects.filter(name=name, retired=False).first()


def parse_handler_map(text):
    """
    "Test Order=LAB, Imaging Order=RAD" -> {"Test Order": "LAB", "Imaging Order": "RAD"}
    """
    mapping = {}
    if not text or not text.strip():
        return mapping
    for part in text.strip().split(","):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        if not sep or not key.strip() or not value.strip():
            logger.warning("Ignoring malformed order type mapping '%s'", part.strip())
            continue
        mapping[key.strip()] = value.strip()
    return mapping


def get_order_type_to_handler_map():
    mapping = dict(get_setting("ORDER_TYPE_TO_HANDLER_MAP"))
    mapping.update(parse_handler_map(GlobalProperty.get_value(ORDER_TYPE_TO_HANDLER_MAP_PROPERTY)))
    return mapping
