import json
import logging
from dataclasses import asdict
from typing import Any

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .domain_models import RRPTotals, coerce_bool
from .equipment import expand_equipment_numbers, filter_suggestions
from .rrp_config import get_rrp_config
from .rrp_engine import calculate_totals, is_foreign_rrp
from .rrp_report import export_totals_csv

logger = logging.getLogger(__name__)


class RRPPayloadError(ValueError):
    """Raised when an RRP request body cannot be used."""


def _load_payload(request) -> dict[str, Any]:
    try:
        payload = json.loads(request.body or b"{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RRPPayloadError("Request body must be valid JSON.") from exc

    if not isinstance(payload, dict):
        raise RRPPayloadError("Request body must be a JSON object.")
    return payload


def _is_foreign(payload: dict[str, Any]) -> bool:
    if "is_foreign" in payload:
        return coerce_bool(payload["is_foreign"])
    if payload.get("type") in ("local", "foreign"):
        return payload["type"] == "foreign"
    return is_foreign_rrp(payload.get("rrp_number"))


def _compute(payload: dict[str, Any]) -> RRPTotals:
    """Run the RRP calculation for a request payload."""

    items = payload.get("items")
    if isinstance(items, list) and not all(
        item is None or isinstance(item, dict) for item in items
    ):
        raise RRPPayloadError("Every entry in 'items' must be an object.")

    config = get_rrp_config()
    is_foreign = _is_foreign(payload)

    freight_charge = payload.get("freight_charge")
    custom_service_charge = payload.get("custom_service_charge")
    # without order-level charges the lines keep their stored shares
    if custom_service_charge is None and is_foreign and freight_charge is not None:
        custom_service_charge = config.custom_service_charge

    vat_rate = payload.get("vat_rate")
    if vat_rate is None:
        vat_rate = config.vat_rate

    result = calculate_totals(
        items,
        freight_charge=freight_charge,
        custom_service_charge=custom_service_charge,
        vat_rate=vat_rate,
        is_foreign=is_foreign,
    )
    if result.error:
        raise RRPPayloadError(f"{result.error}: 'items' must be a list.")
    return result


def _error(message: str, status: int = 400) -> JsonResponse:
    return JsonResponse({"error": message}, status=status)


@require_GET
def rrp_config_view(request):
    return JsonResponse(get_rrp_config().as_dict())


@csrf_exempt
@require_POST
def rrp_totals_view(request):
    try:
        result = _compute(_load_payload(request))
    except RRPPayloadError as exc:
        logger.warning("Rejected RRP totals request: %s", exc)
        return _error(str(exc))

    logger.info("Calculated RRP totals for %d item(s)", len(result.rows))
    return JsonResponse(
        {
            "rows": [
                {"item": asdict(row.item), "totals": asdict(row.totals)}
                for row in result.rows
            ],
            "totals": asdict(result.totals),
        }
    )


@csrf_exempt
@require_POST
def rrp_export_view(request):
    try:
        result = _compute(_load_payload(request))
    except RRPPayloadError as exc:
        logger.warning("Rejected RRP export request: %s", exc)
        return _error(str(exc))

    response = HttpResponse(export_totals_csv(result), content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="rrp.csv"'
    return response


@require_GET
def equipment_suggestions_view(request):
    """
    Autocomplete source for the equipment number picker:
    - equipment_list: the request's equipment numbers, e.g. "1001-1004, APU"
    - q: optional search text
    """
    suggestions = expand_equipment_numbers(request.GET.get("equipment_list", ""))
    query = request.GET.get("q", "")
    if query:
        suggestions = filter_suggestions(suggestions, query)
    return JsonResponse({"suggestions": suggestions})
