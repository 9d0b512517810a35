"""
Unit tests for catalog.py - percentage parsing, catalog normalization and presets.
"""
import json

import pytest

from gacha_core.catalog import (
    builtin_presets,
    catalog_to_records,
    default_catalog,
    format_probability_percent,
    load_banner_presets,
    normalize_catalog,
    parse_probability_percent,
)
from gacha_core.errors import ConfigurationError, ErrorKind
from gacha_core.models import ItemGroup


class TestParseProbabilityPercent:
    """Tests for parse_probability_percent()."""

    def test_percent_string(self):
        """A trailing percent sign is stripped and the value divided by 100."""
        assert parse_probability_percent("0.926%") == pytest.approx(0.00926)

    def test_whitespace_is_tolerated(self):
        """Surrounding and inner whitespace should not matter."""
        assert parse_probability_percent(" 10 % ") == pytest.approx(0.1)

    def test_plain_numbers(self):
        """Numbers and strings without a percent sign are already in percent."""
        assert parse_probability_percent(10) == pytest.approx(0.1)
        assert parse_probability_percent("25") == pytest.approx(0.25)

    def test_exact_for_simple_values(self):
        """Round percentages convert without representation error."""
        assert parse_probability_percent("10%") == 0.1
        assert parse_probability_percent("90%") == 0.9

    @pytest.mark.parametrize("raw", ["abc", "", "%", "-1%", "nan", "inf%", True])
    def test_invalid_values(self, raw):
        """Unparseable, negative or non-finite values are configuration errors."""
        with pytest.raises(ConfigurationError) as excinfo:
            parse_probability_percent(raw)
        assert excinfo.value.kind is ErrorKind.INVALID_PROBABILITY

    def test_format_round_trip(self):
        """format_probability_percent() renders three decimals."""
        assert format_probability_percent(0.00926) == "0.926%"


class TestNormalizeCatalog:
    """Tests for normalize_catalog()."""

    def test_mapping_rows(self):
        """Mappings are converted into ItemGroup instances."""
        groups = normalize_catalog(
            [
                {"label": "A", "probability": "10%", "count": 2},
                {"label": "B", "probabilityPercent": "5%", "count": "3"},
            ]
        )
        assert groups == [ItemGroup("A", 0.1, 2), ItemGroup("B", 0.05, 3)]

    def test_empty_labels_are_skipped(self):
        """Rows without a label are dropped like blank CSV lines."""
        groups = normalize_catalog(
            [
                {"label": "", "probability": "1%", "count": 1},
                {"label": "A", "probability": "1%", "count": 1},
            ]
        )
        assert [group.label for group in groups] == ["A"]

    def test_integral_float_counts(self):
        """Counts coming from a DataFrame as floats are accepted when integral."""
        groups = normalize_catalog([{"label": "A", "probability": "1%", "count": 4.0}])
        assert groups[0].count == 4

    @pytest.mark.parametrize("count", [-1, 2.5, "many", True])
    def test_invalid_counts(self, count):
        """Negative or non-integer counts raise INVALID_COUNT."""
        with pytest.raises(ConfigurationError) as excinfo:
            normalize_catalog([{"label": "A", "probability": "1%", "count": count}])
        assert excinfo.value.kind is ErrorKind.INVALID_COUNT

    def test_missing_probability(self):
        """A row without any probability column is rejected."""
        with pytest.raises(ConfigurationError) as excinfo:
            normalize_catalog([{"label": "A", "count": 1}])
        assert excinfo.value.kind is ErrorKind.INVALID_PROBABILITY

    def test_item_groups_pass_through(self):
        """ItemGroup instances are validated and kept."""
        group = ItemGroup("A", 0.5, 1)
        assert normalize_catalog([group]) == [group]

    def test_negative_item_group_probability(self):
        """ItemGroup instances with negative probability are rejected."""
        with pytest.raises(ConfigurationError):
            normalize_catalog([ItemGroup("A", -0.5, 1)])

    @pytest.mark.parametrize("probability", ["10%", None, True])
    def test_non_numeric_item_group_probability(self, probability):
        """ItemGroup instances must carry a numeric fraction."""
        with pytest.raises(ConfigurationError) as excinfo:
            normalize_catalog([ItemGroup("A", probability, 1)])
        assert excinfo.value.kind is ErrorKind.INVALID_PROBABILITY

    def test_catalog_to_records(self):
        """catalog_to_records() produces label/probability/count rows."""
        assert catalog_to_records([ItemGroup("A", 0.1, 2)]) == [
            {"label": "A", "probability": "10.000%", "count": 2}
        ]


class TestPresets:
    """Tests for the built-in and JSON-loaded banner presets."""

    def test_default_catalog_order(self):
        """The default catalog keeps the shipped row order."""
        catalog = default_catalog()
        assert catalog[0].label == "Wピックアップ"
        assert catalog[0].probability == pytest.approx(0.00926)
        assert catalog[0].count == 12
        assert catalog[-1].label == "素材-b"

    def test_builtin_preset_names(self):
        """Both shipped presets are available."""
        presets = builtin_presets()
        assert list(presets) == ["Wピックアップ", "通常ピックアップ"]
        assert presets["Wピックアップ"].targets_by_label == {"Wピックアップ": 1}

    def test_normal_pickup_overrides(self):
        """The regular banner moves mass onto the single rate-up and bonus slot."""
        items = {group.label: group for group in builtin_presets()["通常ピックアップ"].items}
        assert items["Wピックアップ"].count == 0
        assert items["ピックアップ"].probability == pytest.approx(0.01436)
        assert items["ピックアップ"].count == 1
        assert items["追加枠"].probability == pytest.approx(0.01777)

    def test_load_presets_from_json(self, tmp_path):
        """Valid entries are loaded and malformed entries are skipped."""
        path = tmp_path / "banner_presets.json"
        path.write_text(
            json.dumps(
                {
                    "Test banner": {
                        "targets": {"A": 1, "B": "x"},
                        "items": [
                            {"label": "A", "probability": "1%", "count": 1},
                            {"label": "B", "probability": "99%", "count": 1},
                        ],
                    },
                    "Broken": {"targets": {}, "items": "nope"},
                    "Bad probability": {"items": [{"label": "A", "probability": "x", "count": 1}]},
                }
            ),
            encoding="utf-8",
        )
        presets = load_banner_presets(path)
        assert list(presets) == ["Test banner"]
        assert presets["Test banner"].targets_by_label == {"A": 1}
        assert len(presets["Test banner"].items) == 2

    def test_missing_file(self, tmp_path):
        """A missing presets file yields no presets."""
        assert load_banner_presets(tmp_path / "missing.json") == {}
        assert load_banner_presets(None) == {}

    def test_invalid_json(self, tmp_path):
        """Malformed JSON yields no presets."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_banner_presets(path) == {}

    def test_unreadable_path(self, tmp_path):
        """A path that cannot be read as a file yields no presets."""
        assert load_banner_presets(tmp_path) == {}
