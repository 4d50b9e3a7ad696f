from io import StringIO

import pytest
from django.core.management import call_command

from clinical.models import Concept, EncounterRole, EncounterType, OrderType


@pytest.mark.django_db
def test_load_fhir_metadata_is_idempotent():
    out = StringIO()
    call_command("load_fhir_metadata", stdout=out)
    call_command("load_fhir_metadata", stdout=out)

    assert Concept.objects.get(code="DIAGNOSTIC_REPORT_RESULT").datatype == Concept.Datatype.NA
    assert Concept.objects.get(code="DIAGNOSTIC_REPORT_PRESENTED_FORM").is_complex
    assert set(EncounterType.objects.values_list("name", flat=True)) == {"LAB", "DEFAULT"}
    assert EncounterRole.objects.filter(name="Unknown").count() == 1
    assert OrderType.objects.filter(name="Test Order").exists()
    assert "déjà présent" in out.getvalue()
