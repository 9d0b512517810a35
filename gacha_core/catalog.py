"""Catalog normalization and banner preset helpers."""

from __future__ import annotations

import json
import math
import numbers
import operator
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Union

from .data import (
    BUILTIN_PRESET_TARGETS,
    DEFAULT_CATALOG_ROWS,
    NORMAL_PICKUP_OVERRIDES,
)
from .errors import ConfigurationError, ErrorKind
from .models import BannerPreset, ItemGroup

CatalogRecord = Union[ItemGroup, Mapping[str, object]]


def parse_probability_percent(text: object) -> float:
    """Convert a percentage such as ``"0.926%"`` into a fraction.

    Parameters
    ----------
    text:
        Percentage string (the trailing ``%`` is optional) or a plain number
        already expressed in percent.

    Raises
    ------
    ConfigurationError
        If the value is not a finite, non-negative number.
    """

    if isinstance(text, bool):
        raise ConfigurationError(
            f"Invalid probability {text!r}", ErrorKind.INVALID_PROBABILITY
        )
    if isinstance(text, (int, float)):
        percent = float(text)
    else:
        cleaned = str(text).strip().rstrip("%").strip()
        try:
            percent = float(cleaned)
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid probability {text!r}", ErrorKind.INVALID_PROBABILITY
            ) from exc
    if not math.isfinite(percent) or percent < 0.0:
        raise ConfigurationError(
            f"Invalid probability {text!r}", ErrorKind.INVALID_PROBABILITY
        )
    return percent / 100.0


def format_probability_percent(probability: float) -> str:
    """Render a fraction back into the catalog's percentage notation."""

    return f"{probability * 100:.3f}%"


def _coerce_count(label: str, raw: object) -> int:
    """Return ``raw`` as a non-negative item count."""

    invalid = ConfigurationError(
        f"Invalid count {raw!r} for '{label}'", ErrorKind.INVALID_COUNT
    )
    if isinstance(raw, bool):
        raise invalid
    if isinstance(raw, float):
        if not raw.is_integer():
            raise invalid
        count = int(raw)
    elif isinstance(raw, str):
        try:
            count = int(raw.strip())
        except ValueError as exc:
            raise invalid from exc
    else:
        try:
            count = operator.index(raw)
        except TypeError as exc:
            raise invalid from exc
    if count < 0:
        raise invalid
    return count


def validate_item_group(group: ItemGroup) -> ItemGroup:
    """Return ``group`` with a float probability and an ``int`` count.

    Raises
    ------
    ConfigurationError
        If the probability is not a finite, non-negative number, or the count
        is not a non-negative integer.
    """

    probability = group.probability
    if (
        isinstance(probability, bool)
        or not isinstance(probability, numbers.Real)
        or not math.isfinite(probability)
        or probability < 0
    ):
        raise ConfigurationError(
            f"Invalid probability {probability!r} for '{group.label}'",
            ErrorKind.INVALID_PROBABILITY,
        )
    count = _coerce_count(group.label, group.count)
    return ItemGroup(group.label, float(probability), count)


def normalize_catalog(records: Iterable[CatalogRecord]) -> list[ItemGroup]:
    """Coerce loose catalog rows into validated ``ItemGroup`` instances.

    Mappings may use ``probability`` or ``probabilityPercent`` for the
    percentage column. Rows with an empty label are skipped.
    """

    groups: list[ItemGroup] = []
    for record in records:
        if isinstance(record, ItemGroup):
            groups.append(validate_item_group(record))
            continue
        label = str(record.get("label") or "").strip()
        if not label:
            continue
        raw_probability = record.get("probability", record.get("probabilityPercent"))
        if raw_probability is None:
            raise ConfigurationError(
                f"Missing probability for '{label}'", ErrorKind.INVALID_PROBABILITY
            )
        groups.append(
            ItemGroup(
                label=label,
                probability=parse_probability_percent(raw_probability),
                count=_coerce_count(label, record.get("count", 0)),
            )
        )
    return groups


def catalog_to_records(groups: Iterable[ItemGroup]) -> list[dict[str, object]]:
    """Return JSON/CSV-friendly rows for the supplied catalog."""

    return [
        {
            "label": group.label,
            "probability": format_probability_percent(group.probability),
            "count": group.count,
        }
        for group in groups
    ]


def default_catalog() -> list[ItemGroup]:
    """Return the built-in double rate-up catalog."""

    return [
        ItemGroup(label, parse_probability_percent(percent), count)
        for label, percent, count in DEFAULT_CATALOG_ROWS
    ]


def builtin_presets() -> dict[str, BannerPreset]:
    """Return the presets shipped with the calculator, keyed by name."""

    double_pickup = default_catalog()
    normal_pickup = []
    for label, percent, count in DEFAULT_CATALOG_ROWS:
        if label in NORMAL_PICKUP_OVERRIDES:
            percent, count = NORMAL_PICKUP_OVERRIDES[label]
        normal_pickup.append(ItemGroup(label, parse_probability_percent(percent), count))

    catalogs = {"Wピックアップ": double_pickup, "通常ピックアップ": normal_pickup}
    return {
        name: BannerPreset(
            name=name,
            items=catalogs[name],
            targets_by_label=dict(BUILTIN_PRESET_TARGETS[name]),
        )
        for name in catalogs
    }


def load_banner_presets(
    preset_path: str | Path | None,
) -> dict[str, BannerPreset]:
    """Load additional banner presets from the given JSON file.

    The file maps a preset name to ``{"targets": {label: n}, "items": [...]}``.
    Unreadable files and malformed entries are ignored.
    """

    if not preset_path:
        return {}

    path = Path(preset_path)
    try:
        raw_data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}

    if not isinstance(raw_data, Mapping):
        return {}

    presets: dict[str, BannerPreset] = {}
    for name, entry in raw_data.items():
        if not isinstance(name, str) or not isinstance(entry, Mapping):
            continue
        raw_items = entry.get("items")
        raw_targets = entry.get("targets", {})
        if not isinstance(raw_items, list) or not isinstance(raw_targets, Mapping):
            continue
        try:
            items = normalize_catalog(row for row in raw_items if isinstance(row, Mapping))
        except ConfigurationError:
            continue

        targets: dict[str, int] = {}
        for label, amount in raw_targets.items():
            try:
                targets[str(label)] = int(amount)
            except (TypeError, ValueError):
                continue

        if items:
            presets[name] = BannerPreset(name=name, items=items, targets_by_label=targets)

    return presets
