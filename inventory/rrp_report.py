from __future__ import annotations

import pandas as pd

from .domain_models import ItemTotals, RRPTotals

MONEY_COLUMNS = [
    "Item Price",
    "Customs Charge",
    "Freight Charge",
    "Customs Service Charge",
    "VAT",
    "Total",
]
COLUMNS = ["NAC Code", "Item Name", "Part Number", "Quantity", "Unit", *MONEY_COLUMNS]


def _money(totals: ItemTotals) -> list[float]:
    return [
        totals.item_price,
        totals.customs_amount,
        totals.freight_charge,
        totals.custom_service_charge,
        totals.vat_amount,
        totals.total,
    ]


def totals_to_frame(result: RRPTotals) -> pd.DataFrame:
    """
    Lay out RRP rows as a table with a closing ``Total`` row, the same
    columns the printed RRP shows. Money is rounded to 2 decimals.
    """
    records = [
        [
            row.item.nac_code,
            row.item.item_name,
            row.item.part_number,
            row.item.quantity,
            row.item.unit,
            *_money(row.totals),
        ]
        for row in result.rows
    ]
    records.append(["Total", "", "", None, "", *_money(result.totals)])

    frame = pd.DataFrame(records, columns=COLUMNS)
    frame[MONEY_COLUMNS] = frame[MONEY_COLUMNS].astype(float).round(2)
    return frame


def export_totals_csv(result: RRPTotals) -> str:
    return totals_to_frame(result).to_csv(index=False)


__all__ = ["COLUMNS", "MONEY_COLUMNS", "totals_to_frame", "export_totals_csv"]
