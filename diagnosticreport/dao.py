# diagnosticreport/dao.py
from clinical.models import Obs, Order
from .exceptions import ResourceNotFound


class DiagnosticReportDao:
    """
    Accès base pour retrouver commandes et rencontres à partir d'un numéro d'accession.
    Les appels s'exécutent dans la transaction courante.
    """

    def find_orders_by_accession_number(self, accession_number):
        return list(
            Order.objects.select_related("order_type", "concept", "patient")
            .filter(accession_number=accession_number)
        )

    def find_encounter_id_for_order(self, order_id):
        # Plusieurs rencontres possibles : on prend celle de la première Obs trouvée
        encounter_id = (
            Obs.objects.filter(order_id=order_id, encounter__isnull=False)
            .order_by("obs_datetime", "id")
            .values_list("encounter_id", flat=True)
            .first()
        )
        if encounter_id is None:
            raise ResourceNotFound(f"No observation recorded for order '{order_id}'.")
        return encounter_id
