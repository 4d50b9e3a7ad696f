from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import DiagnosticReportHandlerViewSet, DiagnosticReportViewSet

router = DefaultRouter(trailing_slash=False)
# Ressources FHIR
router.register(r"DiagnosticReport", DiagnosticReportViewSet, basename="diagnostic-report")

# Administration des handlers
router.register(r"diagnostic-report-handlers", DiagnosticReportHandlerViewSet, basename="diagnostic-report-handler")

urlpatterns = [
    path("", include(router.urls)),
]
