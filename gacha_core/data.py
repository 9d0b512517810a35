"""Domain constants, built-in banner data, and shared type aliases."""

from __future__ import annotations

from typing import Final

SOFT_PITY_PERIOD: Final[int] = 10
HARD_PITY_PERIOD: Final[int] = 100
PRUNE_EPSILON: Final[float] = 1e-15
MASS_TOLERANCE: Final[float] = 1e-9

# Outcomes under these labels satisfy the 10-pull guarantee.
GUARANTEE_LABELS: Final[frozenset[str]] = frozenset(
    {
        "★5武器",
        "★5服装",
        "★5勲章",
        "追加枠",
        "ピックアップ",
        "Wピックアップ",
    }
)

# Targets under these labels are eligible for the 100-pull guarantee.
PITY_LABELS: Final[frozenset[str]] = frozenset({"追加枠", "ピックアップ", "Wピックアップ"})

TARGET_NAME_SEPARATOR: Final[str] = "-target-"

CSV_HEADER: Final[tuple[str, str, str]] = ("ラベル", "確率", "個数")

CatalogRow = tuple[str, str, int]
StateCounts = tuple[int, ...]

DEFAULT_CATALOG_ROWS: Final[list[CatalogRow]] = [
    ("Wピックアップ", "0.926%", 12),
    ("ピックアップ", "0.000%", 0),
    ("追加枠", "0.000%", 0),
    ("★5武器", "0.008%", 188),
    ("★5服装", "0.012%", 62),
    ("★5勲章", "0.008%", 158),
    ("★4武器-a", "0.067%", 19),
    ("★4武器-b", "0.057%", 5),
    ("★3武器", "0.212%", 26),
    ("★2武器", "0.329%", 22),
    ("★4服装-a", "0.057%", 10),
    ("★4服装-b", "0.019%", 3),
    ("★4服装-c", "0.010%", 1),
    ("★3服装-a", "0.180%", 12),
    ("★3服装-b", "0.053%", 1),
    ("★2服装", "0.265%", 11),
    ("★4勲章-a", "0.038%", 16),
    ("★4勲章-b", "0.029%", 1),
    ("★3勲章-a", "0.149%", 20),
    ("★3勲章-b", "0.053%", 1),
    ("★2勲章", "0.350%", 11),
    ("素材-a", "27.775%", 2),
    ("素材-b", "2.187%", 1),
]

# The regular rate-up banner moves the double rate-up mass onto one
# single rate-up item and one bonus-slot item.
NORMAL_PICKUP_OVERRIDES: Final[dict[str, tuple[str, int]]] = {
    "Wピックアップ": ("0.000%", 0),
    "ピックアップ": ("1.436%", 1),
    "追加枠": ("1.777%", 1),
}

BUILTIN_PRESET_TARGETS: Final[dict[str, dict[str, int]]] = {
    "Wピックアップ": {"Wピックアップ": 1},
    "通常ピックアップ": {"ピックアップ": 1, "追加枠": 1},
}

DEFAULT_COPIES_REQUIRED: Final[int] = 1
DEFAULT_MAX_PULLS: Final[int] = 100
DEFAULT_SAMPLE_STEP: Final[int] = 10
