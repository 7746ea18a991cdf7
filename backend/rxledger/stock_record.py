"""
Stock Record value object and unit type vocabulary.

A product's stock is held as whole packs plus loose units outside any pack.
Available stock is always derived from those two counters; nothing else in
the ledger stores a "total".
"""

from __future__ import annotations

from dataclasses import dataclass, replace


TABLETS = "Tablets"
CAPSULES = "Capsules"
GRAMS = "Grams"
BOTTLES = "Bottles"
TUBES = "Tubes"
UNITS = "Units"
MILLILITRES = "Millilitres"
PACKS = "Packs"

UNIT_TYPES = (TABLETS, CAPSULES, GRAMS, BOTTLES, TUBES, UNITS, MILLILITRES, PACKS)

# Packs of these may be broken open to sell loose units
DIVISIBLE_UNIT_TYPES = frozenset({TABLETS, CAPSULES, GRAMS})


@dataclass(frozen=True)
class StockRecord:
    full_packs: int
    loose_units: int
    units_per_pack: int

    def __post_init__(self):
        if self.units_per_pack < 1:
            raise ValueError("units_per_pack must be at least 1")
        if self.loose_units < 0:
            raise ValueError("loose_units cannot be negative")
        if self.full_packs < 0:
            raise ValueError("full_packs cannot be negative")

    @property
    def total_units(self) -> int:
        return self.full_packs * self.units_per_pack + self.loose_units

    def with_counts(self, *, full_packs: int | None = None, loose_units: int | None = None) -> "StockRecord":
        changes = {}
        if full_packs is not None:
            changes["full_packs"] = full_packs
        if loose_units is not None:
            changes["loose_units"] = loose_units
        return replace(self, **changes)

    def snapshot(self) -> dict:
        return {
            "full_packs": self.full_packs,
            "loose_units": self.loose_units,
            "total_units": self.total_units,
        }
