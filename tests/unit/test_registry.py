import threading

import pytest

from diagnosticreport.exceptions import HandlerConfigurationError
from diagnosticreport.handlers import AbstractDiagnosticReportHandler, DefaultDiagnosticReportHandler, LaboratoryHandler
from diagnosticreport.registry import HANDLER_TYPES, HandlerRegistry, handler_type, registry


@pytest.fixture
def handlers():
    return HandlerRegistry({"LAB": LaboratoryHandler(), "DEFAULT": DefaultDiagnosticReportHandler()})


def test_handler_classes_are_in_factory_table():
    assert HANDLER_TYPES["LaboratoryHandler"] is LaboratoryHandler
    assert HANDLER_TYPES["DefaultDiagnosticReportHandler"] is DefaultDiagnosticReportHandler


def test_handler_type_decorator_accepts_a_name():
    @handler_type(name="RadiologyHandler")
    class _Radiology(AbstractDiagnosticReportHandler):
        def get_service_category(self):
            return "RAD"

        def get_service_category_description(self):
            return "Radiology"

    try:
        assert HANDLER_TYPES["RadiologyHandler"] is _Radiology
        handler = HandlerRegistry().register_type("RAD", "RadiologyHandler")
        assert handler.get_service_category() == "RAD"
    finally:
        HANDLER_TYPES.pop("RadiologyHandler", None)


def test_registry_built_at_startup():
    loaded = registry.all()
    assert isinstance(loaded["LAB"], LaboratoryHandler)
    assert isinstance(loaded["DEFAULT"], DefaultDiagnosticReportHandler)


def test_set_all_clears_and_keys_by_service_category(handlers):
    lab = LaboratoryHandler()
    handlers.set_all({"anything": lab})

    assert handlers.all() == {"LAB": lab}


def test_all_returns_a_copy(handlers):
    snapshot = handlers.all()
    snapshot.pop("LAB")

    assert handlers.get("LAB") is not None


def test_register_replaces_existing(handlers):
    replacement = DefaultDiagnosticReportHandler()
    handlers.register("LAB", replacement)

    assert handlers.get("LAB") is replacement


def test_register_type_unknown_name(handlers):
    with pytest.raises(HandlerConfigurationError):
        handlers.register_type("RAD", "NoSuchHandler")
    assert handlers.get("RAD") is None


def test_remove_missing_key_is_noop(handlers):
    handlers.remove("NOPE")
    handlers.remove("LAB")

    assert set(handlers.all()) == {"DEFAULT"}


def test_order_resolution_falls_back_to_default(handlers):
    mapping = {"Test Order": "LAB"}

    assert isinstance(handlers.resolve_handler_for_order("Test Order", mapping), LaboratoryHandler)
    assert isinstance(handlers.resolve_handler_for_order("Radiology Order", mapping), DefaultDiagnosticReportHandler)


def test_order_resolution_with_mapping_to_missing_handler(handlers):
    handler = handlers.resolve_handler_for_order("Radiology Order", {"Radiology Order": "RAD"})

    assert isinstance(handler, DefaultDiagnosticReportHandler)


def test_create_resolution_uses_category_code(handlers):
    assert isinstance(handlers.resolve_handler_for_create("LAB"), LaboratoryHandler)
    assert isinstance(handlers.resolve_handler_for_create(None), DefaultDiagnosticReportHandler)
    assert isinstance(handlers.resolve_handler_for_create("RAD"), DefaultDiagnosticReportHandler)


def test_existing_resolution_uses_encounter_type_name(handlers):
    assert isinstance(handlers.resolve_handler_for_existing("LAB"), LaboratoryHandler)
    assert isinstance(handlers.resolve_handler_for_existing("Consultation"), DefaultDiagnosticReportHandler)


def test_no_default_handler_is_a_configuration_error():
    only_lab = HandlerRegistry({"LAB": LaboratoryHandler()})

    with pytest.raises(HandlerConfigurationError):
        only_lab.resolve_handler_for_create("RAD")
    with pytest.raises(HandlerConfigurationError):
        only_lab.resolve_handler_for_order("Radiology Order", {})


def test_concurrent_registration():
    handlers = HandlerRegistry()
    keys = [f"K{i}" for i in range(50)]

    def worker(key):
        handlers.register(key, LaboratoryHandler())
        handlers.get(key)

    threads = [threading.Thread(target=worker, args=(key,)) for key in keys]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert set(handlers.all()) == set(keys)


def test_set_all_none_clears(handlers):
    handlers.set_all(None)

    assert handlers.all() == {}
