"""
Unit tests for pool.py - draw pool construction and guarantee classification.
"""
import numpy as np
import pytest

from gacha_core.errors import ConfigurationError, ErrorKind
from gacha_core.models import CalculationSettings, DrawOutcome, ItemGroup, PityRules
from gacha_core.pool import (
    build_draw_pool,
    guarantee_pool,
    normalize_targets,
    target_slot_name,
)


@pytest.fixture
def catalog():
    return [
        ItemGroup("ピックアップ", 0.01, 2),
        ItemGroup("★5武器", 0.002, 5),
        ItemGroup("素材", 0.97, 1),
    ]


def settings_for(targets, copies=1, max_pulls=10, step=1):
    return CalculationSettings(
        targets_by_label=targets,
        copies_required=copies,
        max_pulls=max_pulls,
        sample_step=step,
    )


class TestBuildDrawPool:
    """Tests for build_draw_pool()."""

    def test_weights_are_normalized(self, catalog):
        """Outcome weights sum to one and follow per-item probabilities."""
        pool = build_draw_pool(catalog, settings_for({"ピックアップ": 1}))
        assert sum(outcome.weight for outcome in pool.outcomes) == pytest.approx(1.0)
        assert pool.total_mass == pytest.approx(1.0)
        assert pool.outcomes[0].weight == pytest.approx(0.01)
        assert pool.outcomes[0].target_index == 0

    def test_targets_emitted_before_residuals(self, catalog):
        """Target outcomes come first, then one residual per group in catalog order."""
        pool = build_draw_pool(catalog, settings_for({"ピックアップ": 1}))
        labels = [(outcome.label, outcome.target_index) for outcome in pool.outcomes]
        assert labels == [
            ("ピックアップ", 0),
            ("ピックアップ", None),
            ("★5武器", None),
            ("素材", None),
        ]
        assert pool.outcomes[2].weight == pytest.approx(0.01)

    def test_fully_targeted_group_has_no_residual(self, catalog):
        """A group whose every item is a target emits no non-target outcome."""
        pool = build_draw_pool(catalog, settings_for({"ピックアップ": 2}))
        residual_labels = [o.label for o in pool.outcomes if o.target_index is None]
        assert residual_labels == ["★5武器", "素材"]

    def test_target_names_follow_request_order(self, catalog):
        """Target slots are named per label and indexed in request order."""
        pool = build_draw_pool(catalog, settings_for({"★5武器": 1, "ピックアップ": 2}))
        assert pool.target_names == [
            "★5武器-target-1",
            "ピックアップ-target-1",
            "ピックアップ-target-2",
        ]
        assert pool.pity_targets == (1, 2)

    def test_guarantee_flags(self, catalog):
        """Outcomes under guarantee labels are flagged, others are not."""
        pool = build_draw_pool(catalog, settings_for({"ピックアップ": 1}))
        flags = {outcome.label: outcome.guarantee for outcome in pool.outcomes}
        assert flags == {"ピックアップ": True, "★5武器": True, "素材": False}

    def test_guarantee_pool_renormalized(self, catalog):
        """The soft-guarantee pool keeps only flagged outcomes, rescaled to one."""
        pool = build_draw_pool(catalog, settings_for({"ピックアップ": 1}))
        weights = [outcome.weight for outcome in pool.guarantee_outcomes]
        assert weights == pytest.approx([1 / 3, 1 / 3, 1 / 3])
        assert pool.guarantee_outcomes[0].target_index == 0

    def test_custom_rules(self, catalog):
        """Label sets come from the supplied rules, not from globals."""
        rules = PityRules(guarantee_labels=frozenset({"素材"}), pity_labels=frozenset())
        pool = build_draw_pool(catalog, settings_for({"ピックアップ": 1}), rules)
        assert pool.pity_targets == ()
        assert [o.label for o in pool.guarantee_outcomes] == ["素材"]
        assert pool.guarantee_outcomes[0].weight == pytest.approx(1.0)

    def test_duplicate_labels_draw_from_first_group(self):
        """Targets come from the first group; later duplicates stay whole."""
        catalog = [ItemGroup("A", 0.1, 1), ItemGroup("A", 0.2, 1), ItemGroup("B", 0.7, 1)]
        pool = build_draw_pool(catalog, settings_for({"A": 1}))
        weights = [(o.target_index, o.weight) for o in pool.outcomes]
        assert weights == [
            (0, pytest.approx(0.1)),
            (None, pytest.approx(0.2)),
            (None, pytest.approx(0.7)),
        ]

    def test_zero_count_targets_are_ignored(self, catalog):
        """Labels requested zero times do not create slots."""
        pool = build_draw_pool(catalog, settings_for({"ピックアップ": 1, "素材": 0}))
        assert pool.num_targets == 1

    def test_numpy_integer_settings(self, catalog):
        """Integers coming from numpy or pandas are accepted as run settings."""
        settings = CalculationSettings(
            targets_by_label={"ピックアップ": np.int64(1)},
            copies_required=np.int64(2),
            max_pulls=np.int64(10),
            sample_step=np.int64(5),
        )
        pool = build_draw_pool(catalog, settings)
        assert pool.copies_required == 2
        assert type(pool.copies_required) is int

    def test_weights_stay_normalized_with_numpy_floats(self):
        catalog = [ItemGroup("A", np.float32(0.25), 1), ItemGroup("B", 0.75, 1)]
        pool = build_draw_pool(catalog, settings_for({"A": 1}))
        assert sum(outcome.weight for outcome in pool.outcomes) == pytest.approx(1.0)


class TestBuildDrawPoolErrors:
    """Configuration errors raised by build_draw_pool()."""

    def test_empty_catalog(self):
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool([], settings_for({"A": 1}))
        assert excinfo.value.kind is ErrorKind.NO_DATA

    def test_no_targets(self, catalog):
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool(catalog, settings_for({"ピックアップ": 0}))
        assert excinfo.value.kind is ErrorKind.NO_TARGETS

    def test_zero_mass(self):
        catalog = [ItemGroup("A", 0.0, 3), ItemGroup("B", 0.5, 0)]
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool(catalog, settings_for({"A": 1}))
        assert excinfo.value.kind is ErrorKind.ZERO_PROBABILITY_MASS

    def test_unknown_label(self, catalog):
        """A missing label raises instead of being silently ignored."""
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool(catalog, settings_for({"存在しない": 1}))
        assert excinfo.value.kind is ErrorKind.UNKNOWN_LABEL
        assert "存在しない" in str(excinfo.value)

    def test_too_many_targets(self, catalog):
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool(catalog, settings_for({"ピックアップ": 3}))
        assert excinfo.value.kind is ErrorKind.INVALID_TARGET_COUNT

    @pytest.mark.parametrize("probability", [-0.2, float("nan"), float("inf"), "10%"])
    def test_invalid_group_probability(self, probability):
        """Groups built directly are checked before any weight is computed."""
        catalog = [ItemGroup("A", 0.5, 1), ItemGroup("B", probability, 1)]
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool(catalog, settings_for({"A": 1}))
        assert excinfo.value.kind is ErrorKind.INVALID_PROBABILITY

    def test_negative_group_count(self):
        catalog = [ItemGroup("A", 0.5, 1), ItemGroup("B", 0.1, -3)]
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool(catalog, settings_for({"A": 1}))
        assert excinfo.value.kind is ErrorKind.INVALID_COUNT

    @pytest.mark.parametrize("field", ["copies", "max_pulls", "step"])
    def test_invalid_settings(self, catalog, field):
        kwargs = {"copies": 1, "max_pulls": 10, "step": 1, field: 0}
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool(catalog, settings_for({"ピックアップ": 1}, **kwargs))
        assert excinfo.value.kind is ErrorKind.INVALID_SETTINGS

    def test_invalid_periods(self, catalog):
        with pytest.raises(ConfigurationError) as excinfo:
            build_draw_pool(catalog, settings_for({"ピックアップ": 1}), PityRules(soft_period=0))
        assert excinfo.value.kind is ErrorKind.INVALID_SETTINGS

    def test_configuration_error_is_value_error(self, catalog):
        """Callers catching ValueError still see configuration problems."""
        with pytest.raises(ValueError):
            build_draw_pool(catalog, settings_for({"存在しない": 1}))


class TestHelpers:
    """Tests for the small pool helpers."""

    def test_target_slot_name(self):
        assert target_slot_name("追加枠", 2) == "追加枠-target-2"

    def test_normalize_targets(self):
        assert normalize_targets({"A": 2, "B": 0, "C": 1.0}) == {"A": 2, "C": 1}

    @pytest.mark.parametrize("amount", [-1, 1.5, "2", None])
    def test_normalize_targets_rejects(self, amount):
        with pytest.raises(ConfigurationError) as excinfo:
            normalize_targets({"A": amount})
        assert excinfo.value.kind is ErrorKind.INVALID_TARGET_COUNT

    def test_guarantee_pool_empty_when_unflagged(self):
        """No flagged mass means an empty guarantee pool."""
        outcomes = [DrawOutcome(0.5, False), DrawOutcome(0.5, False)]
        assert guarantee_pool(outcomes) == ()

    def test_guarantee_pool_ignores_zero_mass_flags(self):
        outcomes = [DrawOutcome(0.0, True), DrawOutcome(1.0, False)]
        assert guarantee_pool(outcomes) == ()
