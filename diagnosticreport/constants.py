# diagnosticreport/constants.py
from django.db import models
from django.utils.translation import gettext_lazy as _

RESOURCE_TYPE = "DiagnosticReport"

DEFAULT = "DEFAULT"

# HL7 v2 table 0074 : Diagnostic Service Section ID
CODING_0074 = "http://terminology.hl7.org/CodeSystem/v2-0074"

CONCEPT_SYSTEM = "urn:emr:concept"

PERFORMER_ROLE_EXTENSION = "urn:emr:fhir:StructureDefinition/performer-role"

RETIRE_REASON = "Voided by FHIR Request."

UPDATE_VOID_REASON = "Due to update DiagnosticReport on {timestamp}"

RAW_VIEW = "RAW_VIEW"

DEFAULT_REPORT_STATUS = "final"

ORDER_TYPE_TO_HANDLER_MAP_PROPERTY = "fhir.diagnosticreport.orderTypeToHandlerMap"

ENCOUNTER_ROLE_PROPERTY = "fhir.encounter.encounterRole"


class ReportField(models.TextChoices):
    NAME = "NAME", _("Nom")
    STATUS = "STATUS", _("Statut")
    RESULT = "RESULT", _("Résultat")
    PRESENTED_FORM = "PRESENTED_FORM", _("Document présenté")
    IMAGING_STUDY = "IMAGING_STUDY", _("Étude d'imagerie")


CONCEPT_PROPERTIES = {
    ReportField.NAME: "fhir.diagnosticReport.nameConcept",
    ReportField.STATUS: "fhir.diagnosticReport.statusConcept",
    ReportField.RESULT: "fhir.diagnosticReport.resultConcept",
    ReportField.PRESENTED_FORM: "fhir.diagnosticReport.presentedFormConcept",
    ReportField.IMAGING_STUDY: "fhir.diagnosticReport.imagingStudyConcept",
}
