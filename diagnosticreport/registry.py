# diagnosticreport/registry.py
"""
Registre des handlers de DiagnosticReport, indexés par code de catégorie de service.

Les classes de handler s'inscrivent dans HANDLER_TYPES via @handler_type ; un
handler peut alors être enregistré par son nom de type (configuration, API
d'administration) sans import dynamique.
"""
import logging
import threading

from .constants import DEFAULT
from .exceptions import HandlerConfigurationError

logger = logging.getLogger(__name__)

HANDLER_TYPES = {}


def handler_type(cls=None, *, name=None):
    def register(klass):
        HANDLER_TYPES[name or klass.__name__] = klass
        return klass

    if cls is None:
        return register
    return register(cls)


class HandlerRegistry:

    def __init__(self, handlers=None):
        self._lock = threading.RLock()
        self._handlers = {}
        if handlers:
            self.set_all(handlers)

    def get(self, key):
        with self._lock:
            return self._handlers.get(key)

    def all(self):
        with self._lock:
            return dict(self._handlers)

    def set_all(self, handlers):
        """
        Remplace tout le registre ; chaque handler est indexé par sa propre catégorie.
        None vide le registre.
        """
        with self._lock:
            self._handlers.clear()
            for handler in (handlers or {}).values():
                self._handlers[handler.get_service_category()] = handler

    def register(self, key, handler):
        with self._lock:
            previous = self._handlers.get(key)
            self._handlers[key] = handler
        if previous is not None and previous is not handler:
            logger.info("Handler for '%s' replaced by %r", key, handler)
        return handler

    def register_type(self, key, type_name):
        klass = HANDLER_TYPES.get(type_name)
        if klass is None:
            raise HandlerConfigurationError(f"Unknown DiagnosticReport handler type '{type_name}'.")
        return self.register(key, klass())

    def remove(self, key):
        with self._lock:
            self._handlers.pop(key, None)

    def load_from_settings(self, handler_types):
        """{"LAB": "LaboratoryHandler", ...} -> registre rempli."""
        with self._lock:
            self._handlers.clear()
            for key, type_name in handler_types.items():
                self.register_type(key, type_name)
        logger.debug("DiagnosticReport handlers loaded: %s", sorted(self._handlers))

    # ------------- Résolution -------------
    def _get_or_default(self, key):
        with self._lock:
            handler = self._handlers.get(key) if key else None
            if handler is None:
                handler = self._handlers.get(DEFAULT)
        if handler is None:
            raise HandlerConfigurationError(f"No DiagnosticReport handler for '{key}' and no '{DEFAULT}' handler.")
        return handler

    def resolve_handler_for_order(self, order_type_name, order_type_map):
        return self._get_or_default(order_type_map.get(order_type_name))

    def resolve_handler_for_create(self, category_code):
        return self._get_or_default(category_code or DEFAULT)

    def resolve_handler_for_existing(self, encounter_type_name):
        return self._get_or_default(encounter_type_name)


registry = HandlerRegistry()
