import pytest
import tablib

from clinical.models import Concept, GlobalProperty
from clinical.resources import ConceptDatatypeWidget, ConceptResource, GlobalPropertyResource


def test_datatype_widget_accepts_value_or_label():
    widget = ConceptDatatypeWidget()

    assert widget.clean("complex") == Concept.Datatype.COMPLEX
    assert widget.clean("Numérique") == Concept.Datatype.NUMERIC
    assert widget.clean("") == Concept.Datatype.TEXT
    with pytest.raises(ValueError):
        widget.clean("BLOB")


@pytest.mark.django_db
def test_concept_import_creates_and_updates_by_code():
    Concept.objects.create(code="HGB", name="Hb", datatype=Concept.Datatype.TEXT)
    dataset = tablib.Dataset(headers=["code", "name", "datatype", "units"])
    dataset.append(["HGB", "Hemoglobin", "NUMERIC", "g/dL"])
    dataset.append(["DIAGNOSTIC_REPORT_PRESENTED_FORM", "Presented form", "Complexe (binaire)", ""])

    result = ConceptResource().import_data(dataset, dry_run=False)

    assert not result.has_errors()
    hemoglobin = Concept.objects.get(code="HGB")
    assert hemoglobin.name == "Hemoglobin"
    assert hemoglobin.datatype == Concept.Datatype.NUMERIC
    assert Concept.objects.get(code="DIAGNOSTIC_REPORT_PRESENTED_FORM").is_complex


@pytest.mark.django_db
def test_global_property_import_invalidates_cache():
    assert GlobalProperty.get_value("fhir.encounter.encounterRole") is None

    dataset = tablib.Dataset(headers=["name", "value", "description"])
    dataset.append(["fhir.encounter.encounterRole", "Lab Technician", ""])
    GlobalPropertyResource().import_data(dataset, dry_run=False)

    assert GlobalProperty.get_value("fhir.encounter.encounterRole") == "Lab Technician"
