# diagnosticreport/mapping.py
"""
Conversions élémentaires entre le modèle clinique et les ressources FHIR
(références Patient/Practitioner, Observation <-> Obs).
"""
import datetime as dt
from typing import List, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from fhir.resources.codeableconcept import CodeableConcept
from fhir.resources.coding import Coding
from fhir.resources.extension import Extension
from fhir.resources.observation import Observation
from fhir.resources.quantity import Quantity
from fhir.resources.reference import Reference

from clinical.models import Concept, Obs
from .constants import CONCEPT_SYSTEM, PERFORMER_ROLE_EXTENSION


def as_datetime(value) -> Optional[dt.datetime]:
    """Normalise une valeur FHIR date/dateTime/instant en datetime aware."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            parsed_date = parse_date(value)
            if parsed_date is None:
                raise ValueError(f"Invalid date/time value '{value}'")
            value = parsed_date
        else:
            value = parsed
    if isinstance(value, dt.date) and not isinstance(value, dt.datetime):
        value = dt.datetime.combine(value, dt.time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value, dt.timezone.utc)
    return value


def object_uuid_from_reference(reference) -> Optional[str]:
    """
    "Patient/123" -> "123", "#abc" -> "abc",
    "http://host/fhir/Patient/123/_history/2" -> "123"
    """
    if reference is None or not reference.reference:
        return None
    parts = [p for p in reference.reference.strip().split("/") if p]
    if "_history" in parts:
        parts = parts[:parts.index("_history")]
    if not parts:
        return None
    return parts[-1].lstrip("#")


def patient_reference(patient) -> Reference:
    return Reference(
        reference=f"Patient/{patient.pk}",
        type="Patient",
        display=patient.full_name or patient.identifier,
    )


def practitioner_reference(provider, role=None) -> Reference:
    values = {
        "reference": f"Practitioner/{provider.pk}",
        "type": "Practitioner",
        "display": provider.name,
    }
    if role is not None:
        values["extension"] = [Extension(url=PERFORMER_ROLE_EXTENSION, valueString=role.name)]
    return Reference(**values)


def concept_codeable(concept, system=CONCEPT_SYSTEM) -> CodeableConcept:
    return CodeableConcept(
        coding=[Coding(system=system, code=concept.code, display=concept.name)],
        text=concept.name,
    )


def concept_from_codeable(codeable) -> Optional[Concept]:
    if codeable is None:
        return None
    codes = [c.code for c in (codeable.coding or []) if c.code]
    if not codes:
        return None
    concepts = {c.code: c for c in Concept.objects.filter(code__in=codes)}
    for code in codes:
        if code in concepts:
            return concepts[code]
    return None


def obs_to_fhir(obs) -> Observation:
    values = {
        "id": str(obs.pk),
        "status": "entered-in-error" if obs.voided else "final",
        "code": concept_codeable(obs.concept),
        "subject": patient_reference(obs.person),
        "effectiveDateTime": obs.obs_datetime,
    }
    if obs.value_coded_id:
        values["valueCodeableConcept"] = concept_codeable(obs.value_coded)
    elif obs.value_numeric is not None:
        quantity = {"value": obs.value_numeric}
        if obs.concept.units:
            quantity["unit"] = obs.concept.units
        values["valueQuantity"] = Quantity(**quantity)
    elif obs.value_datetime is not None:
        values["valueDateTime"] = obs.value_datetime
    elif obs.value_text is not None:
        values["valueString"] = obs.value_text
    return Observation(**values)


def fhir_to_obs(observation, errors: List[str], person=None, obs_datetime=None) -> Optional[Obs]:
    """
    Construit une Obs non enregistrée. Les problèmes bloquants sont ajoutés à errors
    et la fonction retourne None.
    """
    concept = concept_from_codeable(observation.code)
    if concept is None:
        errors.append(f"Unknown concept for observation code {_codes(observation.code)}")
        return None

    obs = Obs(
        person=person,
        concept=concept,
        obs_datetime=as_datetime(observation.effectiveDateTime) or obs_datetime or timezone.now(),
    )
    if observation.valueQuantity is not None:
        obs.value_numeric = float(observation.valueQuantity.value) \
            if observation.valueQuantity.value is not None else None
    elif observation.valueInteger is not None:
        obs.value_numeric = float(observation.valueInteger)
    elif observation.valueCodeableConcept is not None:
        obs.value_coded = concept_from_codeable(observation.valueCodeableConcept)
        if obs.value_coded is None:
            obs.value_text = observation.valueCodeableConcept.text
    elif observation.valueDateTime is not None:
        obs.value_datetime = as_datetime(observation.valueDateTime)
    elif observation.valueString is not None:
        obs.value_text = observation.valueString
    elif observation.valueBoolean is not None:
        obs.value_text = "true" if observation.valueBoolean else "false"
    return obs


def _codes(codeable):
    if codeable is None:
        return []
    return [c.code for c in (codeable.coding or [])]
