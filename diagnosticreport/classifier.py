# diagnosticreport/classifier.py
"""
Répartition des Obs d'une rencontre dans les champs du DiagnosticReport.

Une Obs dont le concept ne correspond à aucun concept configuré n'est pas une
erreur du compte rendu : elle est journalisée puis écartée, et reste consultable
dans Classification.dropped.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set

from clinical.models import Obs
from . import conf
from .constants import ReportField

logger = logging.getLogger(__name__)

BASE_FIELDS = (ReportField.NAME, ReportField.STATUS, ReportField.RESULT, ReportField.PRESENTED_FORM)


@dataclass
class Classification:
    buckets: Dict[str, Set[Obs]]
    dropped: List[Obs] = field(default_factory=list)

    def __getitem__(self, key):
        return self.buckets[key]


def _empty_buckets(include_imaging_study):
    fields = BASE_FIELDS + ((ReportField.IMAGING_STUDY,) if include_imaging_study else ())
    return {f: set() for f in fields}


def classify(observations, include_imaging_study=False) -> Classification:
    buckets = _empty_buckets(include_imaging_study)
    concept_ids = conf.get_report_concept_ids(buckets.keys())
    field_by_concept = {cid: f for f, cid in concept_ids.items() if cid is not None}

    result = Classification(buckets=buckets)
    for obs in observations:
        report_field = field_by_concept.get(obs.concept_id)
        if report_field is None:
            logger.error("Can't find a report field for concept %s (obs %s)", obs.concept_id, obs.pk)
            result.dropped.append(obs)
            continue
        buckets[report_field].add(obs)
    return result


def populate_results(observations, include_imaging_study=False) -> Classification:
    """Toutes les Obs vont dans RESULT (lecture par commande)."""
    buckets = {ReportField.RESULT: set(observations)}
    if include_imaging_study:
        buckets[ReportField.IMAGING_STUDY] = set()
    return Classification(buckets=buckets)
