from rest_framework import status, viewsets
from rest_framework.response import Response

from diagnosticreport.service import get_diagnostic_report_service
from .permissions import HasKCRealmRole, IsStaff
from .serializers import (
    DiagnosticReportSerializer, HandlerRegistrationSerializer, HandlerSerializer, search_bundle
)


# ------------- Base Mixins -------------
class ServiceMixin:
    http_method_names = ["get", "post", "put", "delete", "head", "options"]

    @property
    def service(self):
        return get_diagnostic_report_service()


# ------------- FHIR DiagnosticReport -------------
class DiagnosticReportViewSet(ServiceMixin, viewsets.ViewSet):
    """
    /fhir/DiagnosticReport[/<id>]
    id = numéro d'accession (commande) ou uuid de la rencontre.
    """
    permission_classes = [IsStaff]
    lookup_value_regex = "[^/]+"

    def retrieve(self, request, pk=None):
        report = self.service.get_diagnostic_report(pk)
        return Response(DiagnosticReportSerializer(report).data)

    def list(self, request):
        name = request.query_params.get("subject:name")
        category = request.query_params.get("category") or None
        reports = self.service.get_diagnostic_report_by_patient_name_and_service_category(name, category)
        return Response(search_bundle(reports))

    def create(self, request):
        serializer = DiagnosticReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = self.service.create_diagnostic_report(serializer.validated_data)
        return Response(DiagnosticReportSerializer(report).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        serializer = DiagnosticReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = self.service.update_diagnostic_report(serializer.validated_data, pk)
        return Response(DiagnosticReportSerializer(report).data)

    def destroy(self, request, pk=None):
        self.service.retire_diagnostic_report(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ------------- Handlers (admin) -------------
class DiagnosticReportHandlerViewSet(ServiceMixin, viewsets.ViewSet):
    permission_classes = [HasKCRealmRole]
    required_roles = {"admin"}
    lookup_field = "key"
    lookup_value_regex = "[^/]+"

    def list(self, request):
        handlers = sorted(self.service.get_handlers().items())
        return Response(HandlerSerializer(handlers, many=True).data)

    def create(self, request):
        serializer = HandlerRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        key = serializer.validated_data["key"]
        handler = self.service.register_handler(key, serializer.validated_data["type"])
        return Response(HandlerSerializer((key, handler)).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, key=None):
        self.service.remove_handler(key)
        return Response(status=status.HTTP_204_NO_CONTENT)
