# diagnosticreport/attachments.py
"""
Stockage des "presentedForm" sous forme d'Obs complexes.

save() se fait en deux temps : store() écrit l'Obs, reload() la relit avec
get_complex_obs(). La relecture est obligatoire même si l'appelant ignore le
résultat : certains stockages ne remplissent les champs dérivés qu'à la lecture.
"""
import logging

from django.utils import timezone
from fhir.resources.attachment import Attachment

from clinical.models import ComplexData, Obs
from .constants import RAW_VIEW
from .mapping import as_datetime

logger = logging.getLogger(__name__)


def attachment_bytes(data):
    # Base64Binary est déjà décodé par fhir.resources
    if data is None:
        return b""
    return bytes(data)


class AttachmentStore:

    def save(self, encounter, complex_concept, patient, attachment):
        obs = self.store(encounter, complex_concept, patient, attachment)
        return self.reload(obs)

    def store(self, encounter, complex_concept, patient, attachment):
        payload = attachment_bytes(attachment.data)
        complex_obs = Obs(
            person=patient,
            concept=complex_concept,
            encounter=encounter,
            obs_datetime=as_datetime(attachment.creation) or timezone.now(),
            complex_data=ComplexData(
                title=attachment.title or "",
                data=payload,
                mime_type=attachment.contentType,
                length=len(payload),
            ),
        )
        complex_obs.save()
        logger.debug("Stored presented form '%s' as obs %s", attachment.title, complex_obs.pk)
        return complex_obs

    def reload(self, obs):
        return Obs.objects.get_complex_obs(obs.pk, RAW_VIEW)

    def load(self, obs) -> Attachment:
        complex_obs = Obs.objects.get_complex_obs(obs.pk, RAW_VIEW)
        complex_data = complex_obs.complex_data
        values = {"creation": obs.obs_datetime}
        if complex_data is not None:
            values["title"] = complex_data.title or None
            values["data"] = complex_data.data
            if complex_data.mime_type:
                values["contentType"] = complex_data.mime_type
        return Attachment(**values)

    def void(self, obs, reason):
        complex_obs = Obs.objects.get_complex_obs(obs.pk, RAW_VIEW)
        complex_obs.void(reason)
        return complex_obs
