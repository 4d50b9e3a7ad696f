import json

from fhir.resources.diagnosticreport import DiagnosticReport
from pydantic import ValidationError as PydanticValidationError
from rest_framework import serializers

from diagnosticreport.constants import RESOURCE_TYPE
from diagnosticreport.registry import HANDLER_TYPES


# --------- FHIR resources ---------
class FHIRResourceSerializer(serializers.BaseSerializer):
    """
    Corps JSON FHIR <-> modèle fhir.resources.
    Les erreurs pydantic sont rendues comme une ValidationError DRF (400).
    """
    resource_class = None
    resource_type = None

    def to_internal_value(self, data):
        if not isinstance(data, dict):
            raise serializers.ValidationError({"detail": "Expected a JSON object."})
        payload = dict(data)
        resource_type = payload.pop("resourceType", self.resource_type)
        if resource_type != self.resource_type:
            raise serializers.ValidationError(
                {"resourceType": f"Expected '{self.resource_type}', got '{resource_type}'."}
            )
        try:
            return self.resource_class.model_validate(payload)
        except PydanticValidationError as exc:
            raise serializers.ValidationError({
                "detail": f"Invalid {self.resource_type} resource.",
                "issues": [
                    {"location": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in exc.errors()
                ],
            })

    def to_representation(self, instance):
        data = json.loads(instance.model_dump_json())
        data.setdefault("resourceType", self.resource_type)
        return data


class DiagnosticReportSerializer(FHIRResourceSerializer):
    resource_class = DiagnosticReport
    resource_type = RESOURCE_TYPE


def search_bundle(reports):
    entries = [{"resource": DiagnosticReportSerializer(r).data} for r in reports]
    return {"resourceType": "Bundle", "type": "searchset", "total": len(entries), "entry": entries}


# --------- Handlers ---------
class HandlerSerializer(serializers.BaseSerializer):
    """(key, handler) -> représentation JSON."""

    def to_representation(self, instance):
        key, handler = instance
        return {
            "key": key,
            "type": type(handler).__name__,
            "serviceCategory": handler.get_service_category(),
            "description": handler.get_service_category_description(),
        }


class HandlerRegistrationSerializer(serializers.Serializer):
    key = serializers.CharField(max_length=64)
    type = serializers.CharField(max_length=128)

    def validate_type(self, value):
        if value not in HANDLER_TYPES:
            raise serializers.ValidationError(
                f"Unknown handler type. Available: {', '.join(sorted(HANDLER_TYPES))}."
            )
        return value
