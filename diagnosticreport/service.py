# diagnosticreport/service.py
"""
Point d'entrée du module : choisit le handler puis lui délègue l'opération.

Choix du handler :
- lecture par numéro d'accession : type de commande -> clé via la table
  ORDER_TYPE_TO_HANDLER_MAP (surchargée par propriété globale) ;
- lecture/mise à jour/retrait d'un compte rendu créé ici : nom du type de rencontre ;
- création : code de la première catégorie du compte rendu.
Sans handler pour la clé, on retombe sur "DEFAULT".
"""
import logging

from django.db import transaction

from clinical.models import Encounter
from . import conf
from .constants import DEFAULT
from .dao import DiagnosticReportDao
from .exceptions import ResourceNotFound
from .handlers.base import first_category_code, parse_uuid
from .registry import registry as default_registry

logger = logging.getLogger(__name__)


class DiagnosticReportService:

    def __init__(self, registry=None, dao=None):
        self.registry = registry or default_registry
        self.dao = dao or DiagnosticReportDao()

    # ------------- Lecture -------------
    def get_diagnostic_report(self, report_id):
        orders = self.dao.find_orders_by_accession_number(report_id)
        if orders:
            order = orders[0]
            if len(orders) > 1:
                logger.debug("%d orders share accession number %s, using %s", len(orders), report_id, order.pk)
            handler = self.registry.resolve_handler_for_order(
                order.order_type.name, conf.get_order_type_to_handler_map()
            )
            logger.debug("DiagnosticReport %s dispatched to %r (order type %s)", report_id, handler,
                         order.order_type.name)
            return handler.get_report_by_id(str(order.pk))

        encounter = self._get_encounter(report_id)
        handler = self.registry.resolve_handler_for_existing(encounter.encounter_type.name)
        return handler.get_report_by_id(str(encounter.pk))

    def get_diagnostic_report_by_patient_name_and_service_category(self, name, code=None):
        handler = self.registry.resolve_handler_for_create(code or DEFAULT)
        return handler.get_reports_by_subject_name(name)

    # ------------- Écriture -------------
    def create_diagnostic_report(self, report):
        handler = self.registry.resolve_handler_for_create(first_category_code(report))
        with transaction.atomic():
            return handler.create_report(report)

    def update_diagnostic_report(self, report, report_id):
        encounter = self._get_encounter(report_id)
        handler = self.registry.resolve_handler_for_existing(encounter.encounter_type.name)
        with transaction.atomic():
            return handler.update_report(report, report_id)

    def retire_diagnostic_report(self, report_id):
        encounter = self._get_encounter(report_id)
        handler = self.registry.resolve_handler_for_existing(encounter.encounter_type.name)
        with transaction.atomic():
            handler.retire_report(report_id)

    # ------------- Handlers -------------
    def get_handler(self, key):
        return self.registry.get(key)

    def get_handlers(self):
        return self.registry.all()

    def set_handlers(self, handlers):
        self.registry.set_all(handlers)

    def register_handler(self, key, handler):
        if isinstance(handler, str):
            return self.registry.register_type(key, handler)
        return self.registry.register(key, handler)

    def remove_handler(self, key):
        self.registry.remove(key)

    @staticmethod
    def _get_encounter(report_id):
        pk = parse_uuid(report_id)
        encounter = Encounter.objects.select_related("encounter_type").filter(pk=pk).first() if pk else None
        if encounter is None:
            raise ResourceNotFound(f"Diagnostic Report with id '{report_id}' not found.")
        return encounter


_service = None


def get_diagnostic_report_service():
    global _service
    if _service is None:
        _service = DiagnosticReportService()
    return _service
