from django.core.management.base import BaseCommand
from django.db import transaction

from clinical.models import Concept, EncounterRole, EncounterType, OrderType
from diagnosticreport import conf
from diagnosticreport.constants import ReportField

REPORT_CONCEPTS = {
    ReportField.NAME: ("Diagnostic report name", Concept.Datatype.TEXT),
    ReportField.STATUS: ("Diagnostic report status", Concept.Datatype.TEXT),
    ReportField.RESULT: ("Diagnostic report result", Concept.Datatype.NA),
    ReportField.PRESENTED_FORM: ("Diagnostic report presented form", Concept.Datatype.COMPLEX),
    ReportField.IMAGING_STUDY: ("Diagnostic report imaging study", Concept.Datatype.NA),
}

ENCOUNTER_TYPES = {
    "LAB": "Laboratory",
    "DEFAULT": "Default",
}

ORDER_TYPES = {
    "Test Order": "Laboratory test order",
}


class Command(BaseCommand):
    help = "Crée les concepts, types de rencontre, rôle et types de commande utilisés par les comptes rendus FHIR."

    @transaction.atomic
    def handle(self, *args, **options):
        for report_field, (name, datatype) in REPORT_CONCEPTS.items():
            code = conf.get_report_concept_code(report_field)
            _, created = Concept.objects.get_or_create(code=code, defaults={"name": name, "datatype": datatype})
            self._report("Concept", code, created)

        for name, description in ENCOUNTER_TYPES.items():
            _, created = EncounterType.objects.get_or_create(name=name, defaults={"description": description})
            self._report("EncounterType", name, created)

        role_name = conf.get_setting("ENCOUNTER_ROLE")
        _, created = EncounterRole.objects.get_or_create(name=role_name)
        self._report("EncounterRole", role_name, created)

        for name, description in ORDER_TYPES.items():
            _, created = OrderType.objects.get_or_create(name=name, defaults={"description": description})
            self._report("OrderType", name, created)

    def _report(self, kind, name, created):
        if created:
            self.stdout.write(self.style.SUCCESS(f"{kind} '{name}' créé"))
        else:
            self.stdout.write(f"{kind} '{name}' déjà présent")
