# diagnosticreport/handlers/base.py
"""
Socle commun des handlers de DiagnosticReport.

Un compte rendu est stocké comme une Encounter :
- issued            -> encounter_datetime
- subject           -> patient
- performer         -> EncounterProvider (rôle configuré)
- category[0]       -> encounter_type (nom = code de catégorie de service)
- code / status     -> Obs NAME / STATUS
- result            -> un groupe d'Obs RESULT dont les membres sont les Observations
- presentedForm     -> Obs complexes PRESENTED_FORM
Les sous-classes ne fournissent que leur catégorie de service.
"""
import logging
import uuid
from abc import ABC, abstractmethod

from django.core.exceptions import ValidationError
from django.utils import timezone
from fhir.resources.codeableconcept import CodeableConcept
from fhir.resources.coding import Coding
from fhir.resources.diagnosticreport import DiagnosticReport
from fhir.resources.observation import Observation
from fhir.resources.reference import Reference

from clinical.models import Encounter, Obs, Order, Patient, Provider
from .. import conf
from ..attachments import AttachmentStore
from ..classifier import classify, populate_results
from ..constants import (
    CODING_0074, DEFAULT, DEFAULT_REPORT_STATUS, RETIRE_REASON, UPDATE_VOID_REASON, ReportField
)
from ..dao import DiagnosticReportDao
from ..exceptions import (
    HandlerConfigurationError, InvalidReport, OperationNotAllowed, ResourceNotFound, UnsupportedOperation
)
from ..mapping import (
    as_datetime, concept_codeable, concept_from_codeable, fhir_to_obs, obs_to_fhir, object_uuid_from_reference,
    patient_reference, practitioner_reference
)


def parse_uuid(value):
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def first_category_code(report):
    for concept in report.category or []:
        for coding in concept.coding or []:
            if coding.code:
                return coding.code
    return None


class AbstractDiagnosticReportHandler(ABC):

    def __init__(self, dao=None, attachment_store=None):
        self.log = logging.getLogger(f"{__name__}.{type(self).__name__}")
        self.dao = dao or DiagnosticReportDao()
        self.attachments = attachment_store or AttachmentStore()

    @abstractmethod
    def get_service_category(self):
        ...

    @abstractmethod
    def get_service_category_description(self):
        ...

    def __repr__(self):
        return f"<{type(self).__name__} {self.get_service_category()}>"

    # ------------- Lecture -------------
    def get_report_by_id(self, report_id):
        self.log.debug("Get DiagnosticReport with ID %s", report_id)
        pk = parse_uuid(report_id)
        if pk is not None:
            order = Order.objects.select_related("concept", "order_type").filter(pk=pk).first()
            if order is not None:
                return self._report_for_order(order)
            encounter = self._get_encounter(pk)
            # Un compte rendu retiré n'est plus servi
            if encounter is not None and not encounter.voided:
                return self._report_for_encounter(encounter)
        raise ResourceNotFound(f"Diagnostic Report with id '{report_id}' not found.")

    def get_reports_by_subject_name(self, name):
        raise UnsupportedOperation(
            f"Search by subject name is not supported by the {self.get_service_category()} handler."
        )

    def _report_for_order(self, order):
        encounter_id = self.dao.find_encounter_id_for_order(order.pk)
        encounter = self._get_encounter(encounter_id)
        if encounter is None:
            raise ResourceNotFound(f"Encounter '{encounter_id}' not found for order '{order.pk}'.")

        top_level = encounter.get_obs_at_top_level()
        order_obs = {obs for obs in top_level if obs.order_id == order.pk}
        presented_form_concept = conf.get_report_concept(ReportField.PRESENTED_FORM)
        attachments = {
            obs for obs in top_level - order_obs
            if presented_form_concept is not None and obs.concept_id == presented_form_concept.pk
        }

        performers = [
            practitioner_reference(link.provider)
            for link in encounter.encounter_providers.select_related("provider").order_by("created_at")
        ]
        category = self._category(self.get_service_category(), self.get_service_category_description())
        return self._build_report(
            report_id=order.accession_number or str(order.pk),
            encounter=encounter,
            code=concept_codeable(order.concept),
            status=DEFAULT_REPORT_STATUS,
            category=category,
            performers=performers,
            result_obs=populate_results(order_obs)[ReportField.RESULT],
            attachment_obs=attachments,
            include_standalone=True,
        )

    def _report_for_encounter(self, encounter):
        obs_sets = classify(encounter.get_obs_at_top_level())

        role = conf.find_encounter_role()
        providers = encounter.get_providers_by_role(role) if role is not None else set()
        performers = [
            practitioner_reference(provider, role)
            for provider in sorted(providers, key=lambda p: p.identifier)
        ]
        service_category = encounter.encounter_type.name
        return self._build_report(
            report_id=str(encounter.pk),
            encounter=encounter,
            code=self._code_from_obs(obs_sets[ReportField.NAME], encounter),
            status=self._status_from_obs(obs_sets[ReportField.STATUS]),
            category=self._category(service_category, service_category),
            performers=performers,
            result_obs=obs_sets[ReportField.RESULT],
            attachment_obs=obs_sets[ReportField.PRESENTED_FORM],
        )

    def _build_report(self, report_id, encounter, code, status, category, performers, result_obs,
                      attachment_obs, include_standalone=False):
        values = {
            "id": report_id,
            "status": status,
            "code": code,
            "category": [category],
            "issued": encounter.encounter_datetime,
            "subject": patient_reference(encounter.patient),
        }
        if performers:
            values["performer"] = performers

        observations = self._result_members(result_obs, include_standalone)
        if observations:
            values["contained"] = [obs_to_fhir(obs) for obs in observations]
            values["result"] = [Reference(reference=f"#{obs.pk}") for obs in observations]

        attachments = [self.attachments.load(obs) for obs in _sorted_obs(attachment_obs)]
        if attachments:
            values["presentedForm"] = attachments
        return DiagnosticReport(**values)

    @staticmethod
    def _result_members(result_obs, include_standalone):
        members = []
        for result in _sorted_obs(result_obs):
            group_members = result.get_group_members()
            if group_members:
                members.extend(_sorted_obs(group_members))
            elif include_standalone and not result.is_obs_grouping:
                members.append(result)
        return members

    @staticmethod
    def _category(code, display):
        return CodeableConcept(coding=[Coding(system=CODING_0074, code=code, display=display)])

    @staticmethod
    def _status_from_obs(status_obs):
        for obs in _sorted_obs(status_obs):
            if obs.value_text:
                return obs.value_text
        return DEFAULT_REPORT_STATUS

    @staticmethod
    def _code_from_obs(name_obs, encounter):
        for obs in _sorted_obs(name_obs):
            if obs.value_coded_id:
                codeable = concept_codeable(obs.value_coded)
                if obs.value_text:
                    codeable.text = obs.value_text
                return codeable
            if obs.value_text:
                return CodeableConcept(text=obs.value_text)
        return CodeableConcept(text=encounter.encounter_type.description or encounter.encounter_type.name)

    # ------------- Écriture -------------
    def create_report(self, report):
        self.log.debug("%s handler : create DiagnosticReport", self.get_service_category())
        issued = as_datetime(report.issued)
        if issued is None:
            raise InvalidReport("DiagnosticReport.issued is required.")

        encounter = Encounter(encounter_datetime=issued)
        encounter.patient = self._get_patient(report.subject, current=None)
        # Sans catégorie de service, on utilise le type "DEFAULT"
        encounter.encounter_type = self._get_encounter_type(first_category_code(report) or DEFAULT)

        # L'Encounter doit exister en base avant d'y rattacher des Obs
        encounter.save()

        self._add_performers(report, encounter)
        self._save_name_and_status(report, encounter)
        self._add_result_group(report, encounter)
        for attachment in report.presentedForm or []:
            self._save_attachment(report, attachment, encounter)

        report.id = str(encounter.pk)
        return report

    def update_report(self, report, report_id):
        self.log.debug("%s handler : update DiagnosticReport with ID %s", self.get_service_category(), report_id)
        encounter = self._get_encounter(parse_uuid(report_id))
        if encounter is None:
            raise ResourceNotFound(f"Diagnostic Report with id '{report_id}' not found.")
        if encounter.voided:
            raise OperationNotAllowed(f"Diagnostic Report '{report_id}' is retired and cannot be updated.")

        obs_sets = classify(encounter.get_obs_at_top_level())

        issued = as_datetime(report.issued)
        if issued is not None:
            encounter.encounter_datetime = issued
        encounter.patient = self._get_patient(report.subject, current=encounter.patient)
        category_code = first_category_code(report)
        if category_code:
            encounter.encounter_type = self._get_encounter_type(category_code)
        encounter.save()

        self._add_performers(report, encounter)

        reason = UPDATE_VOID_REASON.format(timestamp=timezone.now().isoformat())
        for obs in obs_sets[ReportField.NAME] | obs_sets[ReportField.STATUS]:
            obs.void(reason)
        self._save_name_and_status(report, encounter)

        # RESULT est un groupe : l'annulation du groupe annule aussi ses membres
        for result_obs in obs_sets[ReportField.RESULT]:
            result_obs.void(reason)
        self._add_result_group(report, encounter)

        for attachment_obs in obs_sets[ReportField.PRESENTED_FORM]:
            self.attachments.void(attachment_obs, reason)
        for attachment in report.presentedForm or []:
            self._save_attachment(report, attachment, encounter)

        report.id = str(encounter.pk)
        return report

    def retire_report(self, report_id):
        self.log.debug("Retire DiagnosticReport with ID %s", report_id)
        encounter = self._get_encounter(parse_uuid(report_id))
        if encounter is None:
            raise ResourceNotFound(f"Diagnostic Report with id '{report_id}' not found.")
        if encounter.voided:
            return
        try:
            encounter.void(RETIRE_REASON)
        except ValidationError as exc:
            raise OperationNotAllowed(
                f"Failed to retire Encounter '{report_id}' due to : {'; '.join(exc.messages)}"
            )

    # ------------- Helpers -------------
    @staticmethod
    def _get_encounter(pk):
        if pk is None:
            return None
        return Encounter.objects.select_related("patient", "encounter_type").filter(pk=pk).first()

    @staticmethod
    def _get_patient(subject, current):
        patient_uuid = object_uuid_from_reference(subject)
        if patient_uuid is None:
            if current is None:
                raise InvalidReport("DiagnosticReport.subject is required.")
            return current
        pk = parse_uuid(patient_uuid)
        patient = Patient.objects.filter(pk=pk).first() if pk else None
        if patient is None:
            raise ResourceNotFound(f"Patient '{patient_uuid}' not found.")
        return patient

    @staticmethod
    def _get_encounter_type(name):
        encounter_type = conf.get_encounter_type(name)
        if encounter_type is None:
            raise InvalidReport(f"Unknown service category '{name}'.")
        return encounter_type

    @staticmethod
    def _require_concept(report_field):
        concept = conf.get_report_concept(report_field)
        if concept is None:
            raise HandlerConfigurationError(f"Concept for DiagnosticReport {report_field} is not configured.")
        return concept

    def _add_performers(self, report, encounter):
        if not report.performer:
            return
        role = conf.get_encounter_role()
        for performer in report.performer:
            provider_uuid = object_uuid_from_reference(performer)
            if provider_uuid is None:
                self.log.warning("Skipping performer without reference on encounter %s", encounter.pk)
                continue
            pk = parse_uuid(provider_uuid)
            provider = Provider.objects.filter(pk=pk).first() if pk else None
            if provider is None:
                raise ResourceNotFound(f"Practitioner '{provider_uuid}' not found.")
            encounter.add_provider(role, provider)

    def _save_name_and_status(self, report, encounter):
        if report.code is not None:
            concept = self._require_concept(ReportField.NAME)
            coded = concept_from_codeable(report.code)
            text = report.code.text
            if not text and report.code.coding:
                text = report.code.coding[0].display or report.code.coding[0].code
            Obs(person=encounter.patient, concept=concept, encounter=encounter,
                obs_datetime=encounter.encounter_datetime, value_coded=coded, value_text=text).save()
        if report.status:
            concept = self._require_concept(ReportField.STATUS)
            Obs(person=encounter.patient, concept=concept, encounter=encounter,
                obs_datetime=encounter.encounter_datetime, value_text=report.status).save()

    def _add_result_group(self, report, encounter):
        if not report.result:
            return None
        contained = {_resource_id(r): r for r in report.contained or [] if _resource_id(r)}
        errors = []
        members = []
        for reference in report.result:
            observation = self._resolve_observation(reference, contained)
            obs = fhir_to_obs(observation, errors, person=encounter.patient,
                              obs_datetime=encounter.encounter_datetime)
            if obs is not None:
                members.append(obs)
        if errors:
            raise InvalidReport(errors)

        group = Obs(person=encounter.patient, concept=self._require_concept(ReportField.RESULT),
                    encounter=encounter, obs_datetime=encounter.encounter_datetime)
        group.save()
        for obs in members:
            obs.encounter = encounter
            obs.obs_group = group
            obs.save()
        return group

    @staticmethod
    def _resolve_observation(reference, contained):
        ref = (reference.reference or "").strip()
        if ref.startswith("#"):
            resource = contained.get(ref[1:])
            if resource is None:
                raise ResourceNotFound(f"Contained resource '{ref}' not found in DiagnosticReport.")
            if isinstance(resource, dict):
                if resource.get("resourceType") != "Observation":
                    raise InvalidReport(f"Contained resource '{ref}' is not an Observation.")
                resource = Observation.model_validate({k: v for k, v in resource.items() if k != "resourceType"})
            if not isinstance(resource, Observation):
                raise InvalidReport(f"Contained resource '{ref}' is not an Observation.")
            return resource

        obs_uuid = object_uuid_from_reference(reference)
        pk = parse_uuid(obs_uuid)
        obs = Obs.objects.select_related("concept", "person", "value_coded").filter(pk=pk).first() \
            if pk else None
        if obs is None:
            raise ResourceNotFound(f"Observation '{obs_uuid or ref}' not found.")
        return obs_to_fhir(obs)

    def _save_attachment(self, report, attachment, encounter):
        if attachment.creation is None and report.issued is not None:
            attachment.creation = report.issued
        concept = self._require_concept(ReportField.PRESENTED_FORM)
        return self.attachments.save(encounter, concept, encounter.patient, attachment)


def _resource_id(resource):
    if isinstance(resource, dict):
        return resource.get("id")
    return getattr(resource, "id", None)

def _sorted_obs(observations):
    return sorted(observations, key=lambda o: (o.obs_datetime, str(o.concept_id), str(o.pk)))
