"""Core RRP cost calculations."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Mapping, Sequence

import numpy as np

from .domain_models import (
    ItemTotals,
    RRPLineItem,
    RRPRow,
    RRPTotals,
    coerce_number,
)

logger = logging.getLogger(__name__)

TOTALS_ERROR_MESSAGE = "Failed to calculate totals"


def _as_line_item(item: RRPLineItem | Mapping[str, Any]) -> RRPLineItem:
    if isinstance(item, RRPLineItem):
        return item
    return RRPLineItem.from_mapping(item)


def _vat_percent(item: RRPLineItem, vat_rate: float) -> float:
    if item.vat_percentage is not None:
        return item.vat_percentage
    return vat_rate if item.vat else 0.0


def calculate_item_total(
    item: RRPLineItem | Mapping[str, Any], vat_rate: float = 0.0
) -> ItemTotals:
    """Compute the cost breakdown of a single RRP line.

    Quantity is not multiplied in; ``price`` is the line price. Freight and
    customs service charge are the item's already allocated shares.
    """

    line = _as_line_item(item)
    item_price = line.item_price
    taxable = (
        item_price
        + line.freight_charge
        + line.customs_charge
        + line.customs_service_charge
    )
    vat_amount = taxable * (_vat_percent(line, coerce_number(vat_rate)) / 100)

    return ItemTotals(
        item_price=item_price,
        freight_charge=line.freight_charge,
        customs_amount=line.customs_charge,
        custom_service_charge=line.customs_service_charge,
        vat_amount=vat_amount,
        total=taxable + vat_amount,
    )


def _proportional_shares(prices: np.ndarray, amount: float) -> np.ndarray:
    total_price = prices.sum()
    if total_price == 0:
        # nothing to weigh by, split evenly
        return np.full(len(prices), amount / len(prices))
    return prices / total_price * amount


def allocate_charges(
    items: Iterable[RRPLineItem | Mapping[str, Any]],
    freight_charge: Any,
    custom_service_charge: Any,
    is_foreign: bool,
) -> list[RRPLineItem]:
    """Spread order-level charges over the lines by forex-adjusted price.

    Returns new items; the inputs are left untouched.
    """

    lines = [_as_line_item(item) for item in items]
    if not lines:
        return []

    freight = coerce_number(freight_charge)
    service = coerce_number(custom_service_charge) if is_foreign else 0.0

    prices = np.array([line.item_price for line in lines], dtype=float)
    freight_shares = _proportional_shares(prices, freight)
    service_shares = _proportional_shares(prices, service)

    return [
        replace(
            line,
            freight_charge=float(freight_share),
            customs_service_charge=float(service_share),
        )
        for line, freight_share, service_share in zip(
            lines, freight_shares, service_shares
        )
    ]


def calculate_totals(
    items: Sequence[RRPLineItem | Mapping[str, Any] | None],
    freight_charge: Any = None,
    custom_service_charge: Any = None,
    vat_rate: float = 0.0,
    is_foreign: bool = False,
) -> RRPTotals:
    """Calculate every RRP row and the aggregate totals.

    When an order-level charge is passed the lines are allocated first,
    otherwise their stored shares are used as is. A non-list ``items``
    returns zero totals with ``error`` set; entries that are neither lines
    nor mappings are skipped.
    """

    if not isinstance(items, (list, tuple)):
        logger.error("RRP items is not a list: %r", items)
        return RRPTotals(error=TOTALS_ERROR_MESSAGE)

    lines: list[RRPLineItem] = []
    for item in items:
        if item is None:
            continue
        if not isinstance(item, (RRPLineItem, Mapping)):
            logger.warning("Skipping RRP item that is not a line or mapping: %r", item)
            continue
        lines.append(_as_line_item(item))

    if freight_charge is not None or custom_service_charge is not None:
        lines = allocate_charges(
            lines,
            freight_charge=freight_charge,
            custom_service_charge=custom_service_charge,
            is_foreign=is_foreign,
        )

    rows: list[RRPRow] = []
    aggregate = ItemTotals.zero()
    for line in lines:
        line_totals = calculate_item_total(line, vat_rate=vat_rate)
        rows.append(RRPRow(item=line, totals=line_totals))
        aggregate = aggregate.plus(line_totals)

    return RRPTotals(rows=rows, totals=aggregate)


def apply_forex_rate(
    items: Iterable[RRPLineItem | Mapping[str, Any]], forex_rate: Any
) -> list[RRPLineItem]:
    """Return copies of ``items`` priced at a new forex rate."""

    rate = coerce_number(forex_rate, default=1.0)
    return [replace(_as_line_item(item), forex_rate=rate) for item in items]


def is_foreign_rrp(rrp_number: str | None) -> bool:
    """Foreign RRP numbers are prefixed with ``F``."""
    return isinstance(rrp_number, str) and rrp_number.startswith("F")


def summarize_requests(items: Iterable[RRPLineItem]) -> tuple[str, str]:
    """Return the unique request numbers and dates, comma separated."""

    lines = list(items)
    numbers = dict.fromkeys(line.request_number for line in lines if line.request_number)
    dates = dict.fromkeys(line.request_date for line in lines if line.request_date)
    return ", ".join(numbers), ", ".join(dates)


__all__ = [
    "TOTALS_ERROR_MESSAGE",
    "allocate_charges",
    "apply_forex_rate",
    "calculate_item_total",
    "calculate_totals",
    "coerce_number",
    "is_foreign_rrp",
    "summarize_requests",
]
