# Overview: Pure rules for carving a quantity out of packs and loose units.

from __future__ import annotations

import logging
import math

from ..exceptions import InsufficientStockError
from ..stock_record import DIVISIBLE_UNIT_TYPES, StockRecord

"""
Subdivision rules (authoritative)

- Tablets, Capsules and Grams are DIVISIBLE: a pack may be broken open and
  the leftover units kept as loose stock.
- Every other unit type, known or not, is WHOLE-UNIT.
- Decrements always consume loose units first.
- Increments normalize: every complete pack's worth of loose units becomes a
  full pack, so loose_units < units_per_pack afterwards.
- Decrements do NOT normalize; loose units may exceed one pack between
  restocks.

Whole-unit packs:
- The whole-unit path removes the remaining quantity from full_packs one for
  one. This is only dimensionally exact when units_per_pack == 1. The
  arithmetic is kept as-is because downstream reports depend on it; a warning
  is logged whenever it runs with units_per_pack > 1.
"""

logger = logging.getLogger(__name__)

DIVISIBLE = "divisible"
WHOLE_UNIT = "whole_unit"


def classify(unit_type: str | None) -> str:
    """Return DIVISIBLE or WHOLE_UNIT for a product unit type."""
    if unit_type in DIVISIBLE_UNIT_TYPES:
        return DIVISIBLE
    return WHOLE_UNIT


def decrement_divisible(record: StockRecord, quantity: int, *, product_name: str = "product") -> StockRecord:
    used_loose = min(quantity, record.loose_units)
    loose = record.loose_units - used_loose
    remaining = quantity - used_loose

    if remaining <= 0:
        return record.with_counts(loose_units=loose)

    packs_to_break = math.ceil(remaining / record.units_per_pack)
    if packs_to_break > record.full_packs:
        raise InsufficientStockError(
            product_name,
            available=record.total_units,
            requested=quantity,
        )

    broken_units = packs_to_break * record.units_per_pack
    return record.with_counts(
        full_packs=record.full_packs - packs_to_break,
        loose_units=loose + (broken_units - remaining),
    )


def decrement_whole_unit(record: StockRecord, quantity: int, *, product_name: str = "product") -> StockRecord:
    if quantity > record.total_units:
        raise InsufficientStockError(
            product_name,
            available=record.total_units,
            requested=quantity,
        )

    used_loose = min(quantity, record.loose_units)
    loose = record.loose_units - used_loose
    remaining = quantity - used_loose

    if remaining <= 0:
        return record.with_counts(loose_units=loose)

    if record.units_per_pack > 1:
        logger.warning(
            "Whole-unit decrement of %s packs for %s with units_per_pack=%s",
            remaining, product_name, record.units_per_pack,
        )

    # Packs can never go negative
    if remaining > record.full_packs:
        raise InsufficientStockError(
            product_name,
            available=record.total_units,
            requested=quantity,
            message=f"Not enough whole packs of {product_name}. Packs: {record.full_packs}, Requested: {remaining}",
        )

    return record.with_counts(full_packs=record.full_packs - remaining, loose_units=loose)


def fulfillable(record: StockRecord, unit_type: str | None) -> int:
    """Largest quantity decrement() would accept for this record."""
    if classify(unit_type) == DIVISIBLE:
        return record.total_units
    # One pack per remaining unit
    return record.loose_units + record.full_packs


def decrement(record: StockRecord, quantity: int, unit_type: str | None, *, product_name: str = "product") -> StockRecord:
    """Remove `quantity` units according to the unit type's subdivision rule."""
    if quantity < 0:
        raise ValueError("quantity cannot be negative")
    if classify(unit_type) == DIVISIBLE:
        return decrement_divisible(record, quantity, product_name=product_name)
    return decrement_whole_unit(record, quantity, product_name=product_name)


def increment(record: StockRecord, packs: int = 0, units: int = 0) -> StockRecord:
    """Restock, then fold complete packs of loose units back into full packs."""
    if packs < 0 or units < 0:
        raise ValueError("restock quantities cannot be negative")

    full_packs = record.full_packs + packs
    loose = record.loose_units + units

    full_packs += loose // record.units_per_pack
    loose = loose % record.units_per_pack

    return record.with_counts(full_packs=full_packs, loose_units=loose)
