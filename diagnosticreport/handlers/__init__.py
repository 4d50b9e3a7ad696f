from .base import AbstractDiagnosticReportHandler
from .default import DefaultDiagnosticReportHandler
from .laboratory import LaboratoryHandler

__all__ = [
    "AbstractDiagnosticReportHandler",
    "DefaultDiagnosticReportHandler",
    "LaboratoryHandler",
]
