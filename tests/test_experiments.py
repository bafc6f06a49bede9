"""
Tests for prompt A/B experiments.
"""

import pytest

from note_analysis.entities import Experiment, ExperimentVariant
from note_analysis.exceptions import (
    ExperimentInactiveError,
    ExperimentNotFoundError,
    ExperimentValidationError,
)
from note_analysis.prompts import EYECATCH_V1_JA, HASHTAG_V1_JA, HASHTAG_V2_JSON
from note_analysis.services import ExperimentManager, validate_experiment


def make_experiment(experiment_id="hashtag-ab", control=50, treatment=50, **kwargs):
    return Experiment(
        id=experiment_id,
        name="Hashtag format",
        category="hashtag",
        variants=[
            ExperimentVariant(id="control", prompt=HASHTAG_V1_JA, traffic_percentage=control),
            ExperimentVariant(id="json", prompt=HASHTAG_V2_JSON, traffic_percentage=treatment),
        ],
        **kwargs,
    )


@pytest.fixture
def manager():
    manager = ExperimentManager()
    manager.create_experiment(make_experiment())
    return manager


def test_assignment_is_stable_per_user(manager):
    """The same user always lands in the same variant."""
    first = manager.select_variant("hashtag-ab", "user-42").id
    assert all(manager.select_variant("hashtag-ab", "user-42").id == first for _ in range(20))


def test_traffic_split_is_roughly_even(manager):
    """A 50/50 split assigns close to half the users to each variant."""
    users = 100_000
    control = sum(
        1 for i in range(users) if manager.select_variant("hashtag-ab", f"user-{i}").id == "control"
    )
    assert 0.45 < control / users < 0.55


def test_full_traffic_goes_to_one_variant():
    manager = ExperimentManager()
    manager.create_experiment(make_experiment(control=100, treatment=0))
    assert {manager.select_variant("hashtag-ab", f"user-{i}").id for i in range(200)} == {"control"}


def test_inactive_variant_gets_no_traffic(manager):
    manager.get_experiment("hashtag-ab").variants[1].active = False
    assert {manager.select_variant("hashtag-ab", f"user-{i}").id for i in range(200)} == {"control"}


def test_select_from_unknown_experiment(manager):
    with pytest.raises(ExperimentNotFoundError):
        manager.select_variant("missing", "user")


def test_select_from_inactive_experiment(manager):
    manager.deactivate("hashtag-ab")
    with pytest.raises(ExperimentInactiveError):
        manager.select_variant("hashtag-ab", "user")

    manager.activate("hashtag-ab")
    assert manager.select_variant("hashtag-ab", "user")


def test_select_with_no_active_variants(manager):
    for variant in manager.get_experiment("hashtag-ab").variants:
        variant.active = False
    with pytest.raises(ExperimentInactiveError):
        manager.select_variant("hashtag-ab", "user")


def test_select_for_category(manager):
    selection = manager.select_for_category("hashtag", "user-1")
    assert selection.from_experiment
    assert selection.experiment_id == "hashtag-ab"
    assert selection.variant_id in {"control", "json"}
    assert selection.template.category == "hashtag"

    assert manager.select_for_category("analysis", "user-1") is None

    manager.deactivate("hashtag-ab")
    assert manager.select_for_category("hashtag", "user-1") is None


@pytest.mark.parametrize(
    "experiment, message",
    [
        (make_experiment(control=60, treatment=30), "must sum to 100"),
        (make_experiment(control=120, treatment=-20), "negative traffic"),
        (make_experiment(experiment_id=""), "must have id, name, and category"),
    ],
)
def test_validation_errors(experiment, message):
    with pytest.raises(ExperimentValidationError, match=message):
        validate_experiment(experiment)


def test_validation_requires_two_variants():
    experiment = make_experiment()
    experiment.variants = experiment.variants[:1]
    with pytest.raises(ExperimentValidationError, match="at least 2 variants"):
        validate_experiment(experiment)


def test_validation_rejects_category_mismatch():
    experiment = make_experiment()
    experiment.variants[1] = ExperimentVariant(id="json", prompt=EYECATCH_V1_JA, traffic_percentage=50)
    with pytest.raises(ExperimentValidationError, match="category mismatch"):
        validate_experiment(experiment)


def test_validation_tolerates_rounding():
    validate_experiment(make_experiment(control=33.333, treatment=66.667))


def test_duplicate_experiment_id(manager):
    with pytest.raises(ExperimentValidationError):
        manager.create_experiment(make_experiment())


def test_update_traffic(manager):
    updated = manager.update_traffic("hashtag-ab", {"control": 80, "json": 20})
    assert [v.traffic_percentage for v in updated.variants] == [80, 20]


def test_rejected_traffic_update_leaves_experiment_unchanged(manager):
    with pytest.raises(ExperimentValidationError):
        manager.update_traffic("hashtag-ab", {"control": 80})
    assert [v.traffic_percentage for v in manager.get_experiment("hashtag-ab").variants] == [50, 50]

    with pytest.raises(ExperimentValidationError, match="Unknown variants"):
        manager.update_traffic("hashtag-ab", {"other": 100})


def test_update_experiment(manager):
    updated = manager.update_experiment("hashtag-ab", name="Renamed")
    assert updated.name == "Renamed"
    assert manager.get_experiment("hashtag-ab").name == "Renamed"

    with pytest.raises(ExperimentValidationError):
        manager.update_experiment("hashtag-ab", id="other")


def test_list_delete_and_stats(manager):
    manager.create_experiment(make_experiment("second", active=False))

    assert len(manager.list_experiments()) == 2
    assert [e.id for e in manager.list_experiments(active_only=True)] == ["hashtag-ab"]

    stats = manager.get_stats()
    assert stats["total"] == 2
    assert stats["active"] == 1
    assert stats["inactive"] == 1
    assert stats["byCategory"] == {"hashtag": 2}
    assert stats["totalVariants"] == 4

    manager.delete_experiment("second")
    assert manager.get_experiment("second") is None
    with pytest.raises(ExperimentNotFoundError):
        manager.delete_experiment("second")
