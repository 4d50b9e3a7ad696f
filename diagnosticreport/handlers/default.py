from ..constants import DEFAULT
from ..registry import handler_type
from .base import AbstractDiagnosticReportHandler


@handler_type
class DefaultDiagnosticReportHandler(AbstractDiagnosticReportHandler):
    """Handler de repli pour les catégories sans handler dédié."""
    SERVICE_CATEGORY = DEFAULT
    SERVICE_CATEGORY_DESCRIPTION = "Default"

    def get_service_category(self):
        return self.SERVICE_CATEGORY

    def get_service_category_description(self):
        return self.SERVICE_CATEGORY_DESCRIPTION
