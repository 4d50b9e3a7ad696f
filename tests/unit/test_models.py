import pytest
from django.core.exceptions import ValidationError

from clinical.models import GlobalProperty, Obs


def test_obs_groups_are_one_level_deep(lab_concepts, encounter, make_obs):
    group = make_obs(lab_concepts.cbc, encounter)
    member = make_obs(lab_concepts.hemoglobin, encounter, obs_group=group, value_numeric=13)
    nested = Obs(person=group.person, concept=lab_concepts.glucose, obs_datetime=group.obs_datetime,
                 obs_group=member)

    with pytest.raises(ValidationError):
        nested.clean()


def test_void_requires_reason(encounter):
    with pytest.raises(ValidationError):
        encounter.void("  ")
    assert not encounter.voided


def test_void_group_cascades_to_members(lab_concepts, encounter, make_obs):
    group = make_obs(lab_concepts.cbc, encounter)
    member = make_obs(lab_concepts.hemoglobin, encounter, obs_group=group, value_numeric=13)

    group.void("wrong sample")

    member.refresh_from_db()
    assert member.voided
    assert member.void_reason == "wrong sample"
    assert group.get_group_members() == set()
    assert group.get_group_members(include_voided=True) == {member}


def test_encounter_void_cascades_to_obs(lab_concepts, encounter, make_obs):
    make_obs(lab_concepts.glucose, encounter, value_numeric=5)

    encounter.void("duplicate")

    assert not encounter.obs.filter(voided=False).exists()
    assert encounter.get_obs_at_top_level() == set()


def test_global_property_missing_value(db):
    GlobalProperty.objects.create(name="empty.property", value="")

    assert GlobalProperty.get_value("empty.property", default="fallback") == "fallback"
    assert GlobalProperty.get_value("absent.property") is None
