"""RRP settings: suppliers, currencies, inspectors and charge rates."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULT_VAT_RATE = 13.0


@dataclass
class RRPConfig:
    supplier_list_local: str = ""
    supplier_list_foreign: str = ""
    currency_list: str = ""
    inspection_user_details: List[Dict[str, str]] = field(default_factory=list)
    vat_rate: float = DEFAULT_VAT_RATE
    custom_service_charge: float = 0.0

    def local_suppliers(self) -> list[str]:
        return _split_list(self.supplier_list_local)

    def foreign_suppliers(self) -> list[str]:
        return _split_list(self.supplier_list_foreign)

    def currencies(self) -> list[str]:
        return _split_list(self.currency_list)

    def inspection_users(self) -> list[dict[str, str]]:
        return [
            {"name": str(user.get("name", "")), "designation": str(user.get("designation", ""))}
            for user in self.inspection_user_details
        ]

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _split_list(raw: str) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def _require_float(value: Any, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ImproperlyConfigured(
            f"INVENTORY_RRP['{field_name}'] must be a number, got {value!r}."
        ) from exc
    if number < 0:
        raise ImproperlyConfigured(f"INVENTORY_RRP['{field_name}'] must not be negative.")
    return number


def get_rrp_config() -> RRPConfig:
    """Read ``settings.INVENTORY_RRP`` into an :class:`RRPConfig`."""

    raw: dict[str, Any] = dict(getattr(settings, "INVENTORY_RRP", {}) or {})

    return RRPConfig(
        supplier_list_local=str(raw.get("supplier_list_local", "")),
        supplier_list_foreign=str(raw.get("supplier_list_foreign", "")),
        currency_list=str(raw.get("currency_list", "")),
        inspection_user_details=list(raw.get("inspection_user_details", [])),
        vat_rate=_require_float(raw.get("vat_rate", DEFAULT_VAT_RATE), "vat_rate"),
        custom_service_charge=_require_float(
            raw.get("custom_service_charge", 0), "custom_service_charge"
        ),
    )


__all__ = ["DEFAULT_VAT_RATE", "RRPConfig", "get_rrp_config"]
