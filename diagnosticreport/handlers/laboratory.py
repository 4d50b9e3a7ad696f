from ..registry import handler_type
from .base import AbstractDiagnosticReportHandler


@handler_type
class LaboratoryHandler(AbstractDiagnosticReportHandler):
    SERVICE_CATEGORY = "LAB"
    SERVICE_CATEGORY_DESCRIPTION = "Laboratory"

    def get_service_category(self):
        return self.SERVICE_CATEGORY

    def get_service_category_description(self):
        return self.SERVICE_CATEGORY_DESCRIPTION
