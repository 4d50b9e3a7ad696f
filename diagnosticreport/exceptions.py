from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError


class ResourceNotFound(NotFound):
    default_detail = _("Resource not found.")
    default_code = "not_found"


class UnsupportedOperation(APIException):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    default_detail = _("Operation not supported by this handler.")
    default_code = "not_supported"


class OperationNotAllowed(APIException):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    default_detail = _("Operation not allowed.")
    default_code = "not_allowed"


class HandlerConfigurationError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = _("Unable to load and instantiate handler.")
    default_code = "handler_configuration"


class InvalidReport(ValidationError):
    default_detail = _("Invalid DiagnosticReport.")
    default_code = "invalid_report"
