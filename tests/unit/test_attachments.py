import base64
import json
from unittest import mock

import pytest
from fhir.resources.attachment import Attachment

from clinical.models import Obs
from diagnosticreport.attachments import AttachmentStore, attachment_bytes


@pytest.fixture
def store():
    return AttachmentStore()


@pytest.fixture
def attachment():
    return Attachment(
        contentType="application/pdf",
        title="cbc.pdf",
        data=base64.b64encode(b"%PDF-1.4 cbc").decode("ascii"),
        creation="2024-03-01T09:00:00+00:00",
    )


def test_attachment_data_is_already_decoded():
    attachment = Attachment.model_validate({"data": base64.b64encode(b"%PDF-1.4 cbc").decode("ascii")})

    assert attachment_bytes(attachment.data) == b"%PDF-1.4 cbc"
    assert attachment_bytes(None) == b""


def test_save_stores_then_reloads(store, metadata, encounter, patient, attachment):
    with mock.patch.object(store, "reload", wraps=store.reload) as reload:
        obs = store.save(encounter, metadata.presented_form, patient, attachment)

    reload.assert_called_once()
    assert obs.complex_data.title == "cbc.pdf"
    assert obs.complex_data.data == b"%PDF-1.4 cbc"
    assert obs.complex_data.mime_type == "application/pdf"
    assert obs.complex_data.length == len(b"%PDF-1.4 cbc")
    assert obs.encounter == encounter
    assert obs.obs_datetime.isoformat().startswith("2024-03-01T09:00:00")


def test_load_builds_fhir_attachment(store, metadata, encounter, patient, attachment):
    obs = store.save(encounter, metadata.presented_form, patient, attachment)

    loaded = store.load(obs)

    assert loaded.title == "cbc.pdf"
    assert loaded.contentType == "application/pdf"
    assert loaded.data == b"%PDF-1.4 cbc"
    assert json.loads(loaded.model_dump_json())["data"] == base64.b64encode(b"%PDF-1.4 cbc").decode("ascii")
    assert loaded.size is None


def test_void_is_idempotent(store, metadata, encounter, patient, attachment):
    obs = store.save(encounter, metadata.presented_form, patient, attachment)

    store.void(obs, "replaced")
    store.void(obs, "replaced again")

    obs = Obs.objects.get(pk=obs.pk)
    assert obs.voided
    assert obs.void_reason == "replaced"


def test_unsupported_complex_view(metadata, encounter, make_obs):
    from django.core.exceptions import ValidationError

    obs = make_obs(metadata.presented_form, encounter, value_complex="x")
    with pytest.raises(ValidationError):
        Obs.objects.get_complex_obs(obs.pk, "THUMBNAIL_VIEW")
