import datetime as dt

import pytest

from clinical.models import Order
from diagnosticreport.dao import DiagnosticReportDao
from diagnosticreport.exceptions import ResourceNotFound


@pytest.fixture
def dao():
    return DiagnosticReportDao()


def test_find_orders_by_accession_number(dao, lab_order, metadata, lab_concepts, patient, issued):
    later = Order.objects.create(
        order_number="ORD-0002", accession_number="ACC-1", order_type=metadata.test_order,
        concept=lab_concepts.glucose, patient=patient, date_activated=issued + dt.timedelta(hours=1),
    )

    assert dao.find_orders_by_accession_number("ACC-1") == [lab_order, later]
    assert dao.find_orders_by_accession_number("ACC-404") == []


def test_find_encounter_id_for_order(dao, lab_order):
    assert dao.find_encounter_id_for_order(lab_order.pk) == lab_order.encounter_id


def test_order_without_obs(dao, metadata, lab_concepts, patient, issued):
    order = Order.objects.create(
        order_number="ORD-0003", accession_number="ACC-3", order_type=metadata.test_order,
        concept=lab_concepts.cbc, patient=patient, date_activated=issued,
    )

    with pytest.raises(ResourceNotFound):
        dao.find_encounter_id_for_order(order.pk)
