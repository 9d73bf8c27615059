"""Domain models for RRP line items and their totals."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def coerce_number(value: Any, default: float = 0.0) -> float:
    """Parse ``value`` as a float, falling back to ``default``.

    Missing, blank, non-numeric and NaN values become ``default``. A parsed
    zero also becomes ``default`` so a zero forex rate reads as 1.
    """

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str) and value.strip() == "":
        return default

    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Could not parse %r as a number, using %s", value, default)
        return default

    if math.isnan(number) or number == 0:
        return default
    return number


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass
class RRPLineItem:
    price: float = 0.0
    quantity: float = 0.0  # display only
    forex_rate: float = 1.0
    customs_charge: float = 0.0
    vat: bool = False
    vat_percentage: float | None = None
    freight_charge: float = 0.0
    customs_service_charge: float = 0.0
    nac_code: str = ""
    item_name: str = ""
    part_number: str = ""
    equipment_number: str = ""
    unit: str = ""
    request_number: str = ""
    request_date: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RRPLineItem":
        """Build an item from a JSON or form mapping, coercing numbers."""

        price_raw = data.get("price")
        if price_raw is None:
            price_raw = data.get("item_price")
        quantity_raw = data.get("quantity")
        if quantity_raw is None:
            quantity_raw = data.get("received_quantity")
        vat_percentage_raw = data.get("vat_percentage")

        return cls(
            price=coerce_number(price_raw),
            quantity=coerce_number(quantity_raw),
            forex_rate=coerce_number(data.get("forex_rate"), default=1.0),
            customs_charge=coerce_number(data.get("customs_charge")),
            vat=coerce_bool(data.get("vat", False)),
            vat_percentage=(
                None
                if vat_percentage_raw is None or vat_percentage_raw == ""
                else coerce_number(vat_percentage_raw)
            ),
            freight_charge=coerce_number(data.get("freight_charge")),
            customs_service_charge=coerce_number(data.get("customs_service_charge")),
            nac_code=str(data.get("nac_code") or ""),
            item_name=str(data.get("item_name") or ""),
            part_number=str(data.get("part_number") or ""),
            equipment_number=str(data.get("equipment_number") or ""),
            unit=str(data.get("unit") or ""),
            request_number=str(data.get("request_number") or ""),
            request_date=str(data.get("request_date") or ""),
        )

    @property
    def item_price(self) -> float:
        """Price converted to local currency."""
        return self.price * self.forex_rate


@dataclass
class ItemTotals:
    item_price: float
    freight_charge: float
    customs_amount: float
    custom_service_charge: float
    vat_amount: float
    total: float

    @classmethod
    def zero(cls) -> "ItemTotals":
        return cls(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    def plus(self, other: "ItemTotals") -> "ItemTotals":
        return ItemTotals(
            item_price=self.item_price + other.item_price,
            freight_charge=self.freight_charge + other.freight_charge,
            customs_amount=self.customs_amount + other.customs_amount,
            custom_service_charge=self.custom_service_charge + other.custom_service_charge,
            vat_amount=self.vat_amount + other.vat_amount,
            total=self.total + other.total,
        )


@dataclass
class RRPRow:
    item: RRPLineItem
    totals: ItemTotals


@dataclass
class RRPTotals:
    rows: list[RRPRow] = field(default_factory=list)
    totals: ItemTotals = field(default_factory=ItemTotals.zero)
    error: str | None = None
