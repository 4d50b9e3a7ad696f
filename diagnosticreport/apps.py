from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class DiagnosticReportConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "diagnosticreport"
    verbose_name = _("Comptes rendus FHIR")

    def ready(self):
        # Import des handlers : inscription dans HANDLER_TYPES via @handler_type
        from . import handlers  # noqa: F401
        from .conf import get_setting
        from .registry import registry

        registry.load_from_settings(get_setting("HANDLERS"))
