from diagnosticreport.constants import CONCEPT_SYSTEM


def observation_payload(obs_id, code, value, unit):
    return {
        "resourceType": "Observation",
        "id": obs_id,
        "status": "final",
        "code": {"coding": [{"system": CONCEPT_SYSTEM, "code": code}]},
        "valueQuantity": {"value": value, "unit": unit},
    }
