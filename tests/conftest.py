import base64
import copy
import datetime as dt
from io import StringIO
from types import SimpleNamespace

import pytest
from django.core.cache import cache
from django.core.management import call_command
from fhir.resources.diagnosticreport import DiagnosticReport

from clinical.models import (
    Concept, Encounter, EncounterRole, EncounterType, Obs, Order, OrderType, Patient, Provider
)
from diagnosticreport import conf
from diagnosticreport.constants import CODING_0074, CONCEPT_SYSTEM
from diagnosticreport.registry import registry
from .payloads import observation_payload

ISSUED = dt.datetime(2024, 3, 1, 8, 30, tzinfo=dt.timezone.utc)


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _reset_registry():
    yield
    registry.load_from_settings(conf.get_setting("HANDLERS"))


@pytest.fixture
def issued():
    return ISSUED


# ---------- Métadonnées ----------
@pytest.fixture
def metadata(db):
    call_command("load_fhir_metadata", stdout=StringIO())
    return SimpleNamespace(
        name=Concept.objects.get(code="DIAGNOSTIC_REPORT_NAME"),
        status=Concept.objects.get(code="DIAGNOSTIC_REPORT_STATUS"),
        result=Concept.objects.get(code="DIAGNOSTIC_REPORT_RESULT"),
        presented_form=Concept.objects.get(code="DIAGNOSTIC_REPORT_PRESENTED_FORM"),
        imaging_study=Concept.objects.get(code="DIAGNOSTIC_REPORT_IMAGING_STUDY"),
        lab_type=EncounterType.objects.get(name="LAB"),
        default_type=EncounterType.objects.get(name="DEFAULT"),
        role=EncounterRole.objects.get(name="Unknown"),
        test_order=OrderType.objects.get(name="Test Order"),
    )


@pytest.fixture
def lab_concepts(db):
    return SimpleNamespace(
        cbc=Concept.objects.create(code="CBC", name="Complete blood count", datatype=Concept.Datatype.NA),
        hemoglobin=Concept.objects.create(
            code="HGB", name="Hemoglobin", datatype=Concept.Datatype.NUMERIC, units="g/dL"
        ),
        glucose=Concept.objects.create(
            code="GLU", name="Glucose", datatype=Concept.Datatype.NUMERIC, units="mmol/L"
        ),
        malaria=Concept.objects.create(code="MAL", name="Malaria smear", datatype=Concept.Datatype.CODED),
        positive=Concept.objects.create(code="POS", name="Positive", datatype=Concept.Datatype.NA),
    )


# ---------- Dossier clinique ----------
@pytest.fixture
def patient(db):
    return Patient.objects.create(identifier="MPI-0001", given_name="Awa", family_name="Kone", sex="F")


@pytest.fixture
def provider(db):
    return Provider.objects.create(identifier="PRV-01", name="Dr Yao")


@pytest.fixture
def encounter(metadata, patient, issued):
    return Encounter.objects.create(patient=patient, encounter_type=metadata.lab_type, encounter_datetime=issued)


@pytest.fixture
def make_obs(patient, issued):
    def _make(concept, encounter=None, **values):
        values.setdefault("obs_datetime", issued)
        return Obs.objects.create(person=patient, concept=concept, encounter=encounter, **values)
    return _make


@pytest.fixture
def lab_order(metadata, lab_concepts, patient, provider, issued, make_obs):
    """Commande labo ACC-1 : un groupe CBC (HGB 13.5, GLU 5.2) saisi dans une rencontre LAB."""
    encounter = Encounter.objects.create(
        patient=patient, encounter_type=metadata.lab_type, encounter_datetime=issued
    )
    encounter.add_provider(metadata.role, provider)
    order = Order.objects.create(
        order_number="ORD-0001", accession_number="ACC-1", order_type=metadata.test_order,
        concept=lab_concepts.cbc, patient=patient, encounter=encounter, date_activated=issued,
    )
    group = make_obs(lab_concepts.cbc, encounter, order=order)
    make_obs(lab_concepts.hemoglobin, encounter, order=order, obs_group=group, value_numeric=13.5)
    make_obs(lab_concepts.glucose, encounter, order=order, obs_group=group, value_numeric=5.2)
    return order


# ---------- Ressources FHIR ----------
@pytest.fixture
def report_payload(metadata, lab_concepts, patient, provider):
    return {
        "resourceType": "DiagnosticReport",
        "status": "final",
        "code": {
            "coding": [{"system": CONCEPT_SYSTEM, "code": "CBC", "display": "Complete blood count"}],
            "text": "Complete blood count",
        },
        "category": [{"coding": [{"system": CODING_0074, "code": "LAB", "display": "Laboratory"}]}],
        "subject": {"reference": f"Patient/{patient.pk}"},
        "issued": "2024-03-01T08:30:00+00:00",
        "performer": [{"reference": f"Practitioner/{provider.pk}"}],
        "contained": [
            observation_payload("hgb", "HGB", 13.5, "g/dL"),
            observation_payload("glu", "GLU", 5.2, "mmol/L"),
        ],
        "result": [{"reference": "#hgb"}, {"reference": "#glu"}],
        "presentedForm": [{
            "contentType": "text/plain",
            "title": "cbc.txt",
            "data": base64.b64encode(b"Hemoglobin 13.5 g/dL").decode("ascii"),
        }],
    }


@pytest.fixture
def make_report(report_payload):
    def _make(**overrides):
        payload = copy.deepcopy(report_payload)
        payload.update(overrides)
        payload = {k: v for k, v in payload.items() if v is not None and k != "resourceType"}
        return DiagnosticReport.model_validate(payload)
    return _make
