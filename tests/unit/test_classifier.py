import logging

from diagnosticreport.classifier import classify, populate_results
from diagnosticreport.constants import ReportField


def test_every_report_field_is_present_even_when_empty(metadata):
    classification = classify([])

    assert set(classification.buckets) == {
        ReportField.NAME, ReportField.STATUS, ReportField.RESULT, ReportField.PRESENTED_FORM
    }
    assert all(bucket == set() for bucket in classification.buckets.values())
    assert classification.dropped == []


def test_imaging_study_bucket_only_when_requested(metadata):
    assert ReportField.IMAGING_STUDY in classify([], include_imaging_study=True).buckets
    assert ReportField.IMAGING_STUDY not in classify([]).buckets


def test_obs_are_bucketed_by_configured_concept(metadata, encounter, make_obs):
    name = make_obs(metadata.name, encounter, value_text="CBC")
    status = make_obs(metadata.status, encounter, value_text="final")
    result = make_obs(metadata.result, encounter)
    form = make_obs(metadata.presented_form, encounter, value_complex="cbc.txt")

    classification = classify([name, status, result, form])

    assert classification[ReportField.NAME] == {name}
    assert classification[ReportField.STATUS] == {status}
    assert classification[ReportField.RESULT] == {result}
    assert classification[ReportField.PRESENTED_FORM] == {form}


def test_unknown_concept_is_logged_and_dropped(metadata, lab_concepts, encounter, make_obs, caplog):
    stray = make_obs(lab_concepts.hemoglobin, encounter, value_numeric=12)
    status = make_obs(metadata.status, encounter, value_text="final")

    with caplog.at_level(logging.ERROR, logger="diagnosticreport.classifier"):
        classification = classify([stray, status])

    assert classification.dropped == [stray]
    assert classification[ReportField.STATUS] == {status}
    assert all(stray not in bucket for bucket in classification.buckets.values())
    assert any(str(stray.pk) in record.getMessage() for record in caplog.records)


def test_imaging_study_obs_dropped_unless_requested(metadata, encounter, make_obs):
    study = make_obs(metadata.imaging_study, encounter)

    assert classify([study]).dropped == [study]
    assert classify([study], include_imaging_study=True)[ReportField.IMAGING_STUDY] == {study}


def test_global_property_overrides_result_concept(metadata, lab_concepts, encounter, make_obs):
    from clinical.models import GlobalProperty

    GlobalProperty.objects.create(name="fhir.diagnosticReport.resultConcept", value="CBC")
    group = make_obs(lab_concepts.cbc, encounter)

    assert classify([group])[ReportField.RESULT] == {group}


def test_populate_results_puts_everything_in_result(metadata, lab_concepts, encounter, make_obs):
    obs = {make_obs(lab_concepts.hemoglobin, encounter, value_numeric=13), make_obs(metadata.name, encounter)}

    classification = populate_results(obs)

    assert classification[ReportField.RESULT] == obs
    assert classification.dropped == []
