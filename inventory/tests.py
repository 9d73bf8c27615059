import json

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from .domain_models import RRPLineItem, coerce_number
from .equipment import (
    expand_equipment_numbers,
    filter_suggestions,
    flatten_equipment_numbers,
    normalize_equipment_numbers,
    parse_equipment_input,
)
from .rrp_config import DEFAULT_VAT_RATE, get_rrp_config
from .rrp_engine import (
    TOTALS_ERROR_MESSAGE,
    allocate_charges,
    apply_forex_rate,
    calculate_item_total,
    calculate_totals,
    is_foreign_rrp,
    summarize_requests,
)
from .rrp_report import totals_to_frame

TEST_RRP_SETTINGS = {
    "supplier_list_local": "Himal Traders, , Everest Supplies",
    "supplier_list_foreign": "Aero Parts Ltd",
    "currency_list": "NPR, USD,EUR",
    "inspection_user_details": [{"name": "R. Shrestha", "designation": "Inspector"}],
    "vat_rate": 13,
    "custom_service_charge": 60,
}


class EquipmentExpansionTests(SimpleTestCase):
    def test_consecutive_numbers_become_ranges(self):
        self.assertEqual(
            expand_equipment_numbers("1,2,3"),
            ["1", "2", "3", "1-2", "1-3", "2-3"],
        )

    def test_single_value_range_has_no_range_entries(self):
        self.assertEqual(expand_equipment_numbers("5-5"), ["5"])

    def test_text_tokens_and_ranges(self):
        self.assertEqual(
            expand_equipment_numbers("A100,200-202"),
            ["200", "201", "202", "A100", "200-201", "200-202", "201-202"],
        )

    def test_empty_input(self):
        self.assertEqual(expand_equipment_numbers(""), [])
        self.assertEqual(expand_equipment_numbers(" , ,"), [])
        self.assertEqual(expand_equipment_numbers(None), [])

    def test_gaps_split_synthesized_ranges(self):
        self.assertEqual(
            expand_equipment_numbers("7, 6, 1, 2, 5"),
            ["1", "2", "5", "6", "7", "1-2", "5-6", "5-7", "6-7"],
        )

    def test_standalone_numbers_next_to_explicit_ranges(self):
        self.assertEqual(
            expand_equipment_numbers("1-3, 7, 2"),
            ["1", "2", "3", "7", "1-2", "1-3", "2-3"],
        )

    def test_reversed_range_is_normalized(self):
        self.assertEqual(
            expand_equipment_numbers("9-7"),
            ["7", "8", "9", "7-8", "7-9", "8-9"],
        )

    def test_malformed_tokens_are_kept_as_text(self):
        parsed = parse_equipment_input("abc-def, 12-x, GPU, -5")
        self.assertEqual(parsed.text_entries, ["abc-def", "12-x", "GPU"])
        self.assertEqual(parsed.numbers, [-5])
        self.assertEqual(parsed.ranges, [(-5, -5)])

    def test_duplicates_are_removed(self):
        self.assertEqual(
            expand_equipment_numbers("3, 3, APU, APU"),
            ["3", "APU"],
        )

    def test_expansion_is_idempotent(self):
        for text in ("A100, 200-203, 7, B2", "-5,-4", "-2-1, GPU"):
            first = expand_equipment_numbers(text)
            second = expand_equipment_numbers(",".join(first))
            self.assertEqual(first, second)
            self.assertEqual(len(first), len(set(first)))

    def test_negative_bounds_parse_as_ranges(self):
        self.assertEqual(expand_equipment_numbers("-5,-4"), ["-5", "-4", "-5--4"])
        self.assertEqual(parse_equipment_input("-5--4").ranges, [(-5, -4)])

    def test_only_plain_digits_count_as_numbers(self):
        self.assertEqual(expand_equipment_numbers("1_0"), ["1_0"])
        self.assertEqual(expand_equipment_numbers("+5"), ["+5"])
        self.assertEqual(parse_equipment_input("1_0-3").text_entries, ["1_0-3"])

    def test_filter_suggestions_ignores_case(self):
        suggestions = ["1001", "APU", "1001-1002", "Apu Cart"]
        self.assertEqual(filter_suggestions(suggestions, "apu"), ["APU", "Apu Cart"])
        self.assertEqual(filter_suggestions(suggestions, "1001"), ["1001", "1001-1002"])
        self.assertEqual(filter_suggestions(suggestions, ""), suggestions)


class EquipmentNormalizationTests(SimpleTestCase):
    def test_flatten_expands_ranges_and_keeps_words(self):
        self.assertEqual(
            flatten_equipment_numbers("1000-1002, APU Unit, 005, A100"),
            {"1000", "1001", "1002", "APU Unit", "005"},
        )

    def test_normalize_collapses_runs_and_title_cases(self):
        self.assertEqual(
            normalize_equipment_numbers("1003, 1001,1002, ge, apu unit"),
            "1001-1003, Apu Unit",
        )

    def test_normalize_strips_ge_and_expands_ranges(self):
        self.assertEqual(
            normalize_equipment_numbers("GE 12, 10-11, engine, 20"),
            "10-12, 20, Engine",
        )

    def test_normalize_empty(self):
        self.assertEqual(normalize_equipment_numbers(""), "")


class CoercionTests(SimpleTestCase):
    def test_missing_and_invalid_values_use_default(self):
        self.assertEqual(coerce_number(None), 0)
        self.assertEqual(coerce_number(""), 0)
        self.assertEqual(coerce_number(float("nan")), 0)
        self.assertEqual(coerce_number("12.5"), 12.5)

    def test_invalid_value_is_logged(self):
        with self.assertLogs("inventory.domain_models", level="WARNING") as logs:
            self.assertEqual(coerce_number("abc"), 0)
        self.assertIn("abc", logs.output[0])

    def test_zero_forex_rate_reads_as_one(self):
        item = RRPLineItem.from_mapping({"price": "10", "forex_rate": "0"})
        self.assertEqual(item.forex_rate, 1)
        self.assertEqual(item.item_price, 10)

    def test_from_mapping_accepts_backend_keys(self):
        item = RRPLineItem.from_mapping(
            {"item_price": "25", "received_quantity": "4", "vat": "true"}
        )
        self.assertEqual(item.price, 25)
        self.assertEqual(item.quantity, 4)
        self.assertTrue(item.vat)
        self.assertIsNone(item.vat_percentage)

    def test_from_mapping_falls_back_when_primary_key_is_null(self):
        item = RRPLineItem.from_mapping(
            {"price": None, "item_price": "25", "quantity": None, "received_quantity": 3}
        )
        self.assertEqual(item.price, 25)
        self.assertEqual(item.quantity, 3)


class RRPEngineTests(TestCase):
    def test_single_local_item_without_charges(self):
        result = calculate_totals(
            [{"price": 100, "forex_rate": 1, "vat": False, "customs_charge": 0}],
            freight_charge=0,
            custom_service_charge=0,
            vat_rate=13,
            is_foreign=False,
        )

        self.assertIsNone(result.error)
        self.assertAlmostEqual(result.totals.item_price, 100)
        self.assertAlmostEqual(result.totals.total, 100)

    def test_freight_split_between_equal_prices(self):
        result = calculate_totals(
            [{"price": 40}, {"price": 40}], freight_charge=100, vat_rate=13
        )

        shares = [row.totals.freight_charge for row in result.rows]
        self.assertEqual(len(shares), 2)
        self.assertAlmostEqual(shares[0], 50)
        self.assertAlmostEqual(shares[1], 50)
        self.assertAlmostEqual(result.totals.total, 180)

    def test_zero_total_price_splits_charges_evenly(self):
        result = calculate_totals(
            [{"price": 0}, {"price": "0"}], freight_charge=100, vat_rate=13
        )

        self.assertEqual([row.totals.freight_charge for row in result.rows], [50, 50])
        self.assertAlmostEqual(result.totals.total, 100)

    def test_empty_items_give_zero_totals(self):
        result = calculate_totals([], freight_charge=100, vat_rate=13)

        self.assertEqual(result.rows, [])
        self.assertEqual(result.totals.total, 0)
        self.assertIsNone(result.error)

    def test_non_numeric_price_does_not_raise(self):
        totals = calculate_item_total({"item_price": "abc", "customs_charge": 5})

        self.assertEqual(totals.item_price, 0)
        self.assertEqual(totals.total, 5)

    def test_item_total_uses_stored_shares_and_vat_percentage(self):
        totals = calculate_item_total(
            {
                "item_price": 100,
                "forex_rate": 2,
                "freight_charge": 20,
                "customs_charge": 30,
                "customs_service_charge": 0,
                "vat_percentage": 13,
            }
        )

        self.assertAlmostEqual(totals.item_price, 200)
        self.assertAlmostEqual(totals.vat_amount, 32.5)
        self.assertAlmostEqual(totals.total, 282.5)

    def test_vat_flag_uses_order_vat_rate(self):
        result = calculate_totals(
            [{"price": 100, "vat": True}, {"price": 100, "vat": False}],
            freight_charge=0,
            vat_rate=15,
        )

        self.assertAlmostEqual(result.rows[0].totals.vat_amount, 15)
        self.assertAlmostEqual(result.rows[1].totals.vat_amount, 0)
        self.assertAlmostEqual(result.totals.vat_amount, 15)
        self.assertAlmostEqual(result.totals.total, 215)

    def test_foreign_order_allocates_customs_service_charge(self):
        items = [
            RRPLineItem(price=10, forex_rate=10, customs_charge=5),
            RRPLineItem(price=30, forex_rate=10),
        ]

        allocated = allocate_charges(
            items, freight_charge=40, custom_service_charge=80, is_foreign=True
        )

        self.assertAlmostEqual(allocated[0].freight_charge, 10)
        self.assertAlmostEqual(allocated[1].freight_charge, 30)
        self.assertAlmostEqual(allocated[0].customs_service_charge, 20)
        self.assertAlmostEqual(allocated[1].customs_service_charge, 60)

        result = calculate_totals(
            items, freight_charge=40, custom_service_charge=80, is_foreign=True
        )
        self.assertAlmostEqual(result.totals.custom_service_charge, 80)
        self.assertAlmostEqual(result.totals.customs_amount, 5)
        self.assertAlmostEqual(result.totals.total, 525)

    def test_local_order_ignores_customs_service_charge(self):
        result = calculate_totals(
            [{"price": 100}], freight_charge=0, custom_service_charge=80
        )

        self.assertEqual(result.totals.custom_service_charge, 0)
        self.assertAlmostEqual(result.totals.total, 100)

    def test_inputs_are_not_mutated(self):
        mapping = {"price": 50, "freight_charge": 1}
        line = RRPLineItem(price=50, freight_charge=1)

        calculate_totals([mapping, line], freight_charge=100)

        self.assertEqual(mapping, {"price": 50, "freight_charge": 1})
        self.assertEqual(line.freight_charge, 1)

    def test_without_order_charges_stored_shares_are_summed(self):
        result = calculate_totals(
            [
                {"price": 10, "freight_charge": 2},
                None,
                {"price": 20, "freight_charge": 3},
            ]
        )

        self.assertEqual(len(result.rows), 2)
        self.assertAlmostEqual(result.totals.freight_charge, 5)
        self.assertAlmostEqual(result.totals.total, 35)

    def test_unusable_entries_are_skipped(self):
        with self.assertLogs("inventory.rrp_engine", level="WARNING"):
            result = calculate_totals([5, "GT 0101", {"price": 10}], freight_charge=4)

        self.assertIsNone(result.error)
        self.assertEqual(len(result.rows), 1)
        self.assertAlmostEqual(result.totals.total, 14)

    def test_non_list_items_return_zero_totals_with_error(self):
        with self.assertLogs("inventory.rrp_engine", level="ERROR"):
            result = calculate_totals("not a list", freight_charge=10)

        self.assertEqual(result.error, TOTALS_ERROR_MESSAGE)
        self.assertEqual(result.rows, [])
        self.assertEqual(result.totals.total, 0)

    def test_apply_forex_rate_returns_repriced_copies(self):
        items = [RRPLineItem(price=10), RRPLineItem(price=2, forex_rate=5)]

        repriced = apply_forex_rate(items, "130")

        self.assertEqual([item.item_price for item in repriced], [1300, 260])
        self.assertEqual(items[1].forex_rate, 5)

    def test_is_foreign_rrp(self):
        self.assertTrue(is_foreign_rrp("F-012"))
        self.assertFalse(is_foreign_rrp("L-012"))
        self.assertFalse(is_foreign_rrp(None))

    def test_summarize_requests_keeps_first_seen_order(self):
        items = [
            RRPLineItem(request_number="R-2", request_date="2024-05-02"),
            RRPLineItem(request_number="R-1", request_date="2024-05-01"),
            RRPLineItem(request_number="R-2", request_date="2024-05-02"),
        ]

        self.assertEqual(
            summarize_requests(items), ("R-2, R-1", "2024-05-02, 2024-05-01")
        )


class RRPReportTests(SimpleTestCase):
    def test_frame_has_total_row_and_rounded_money(self):
        result = calculate_totals(
            [
                {"nac_code": "GT 0101", "price": 10, "quantity": 2, "unit": "EA"},
                {"nac_code": "GT 0102", "price": 10},
                {"nac_code": "GT 0103", "price": 10},
            ],
            freight_charge=10,
        )

        frame = totals_to_frame(result)

        self.assertEqual(len(frame), 4)
        self.assertEqual(frame.iloc[0]["NAC Code"], "GT 0101")
        self.assertEqual(frame.iloc[-1]["NAC Code"], "Total")
        self.assertEqual(frame.iloc[0]["Freight Charge"], 3.33)
        self.assertAlmostEqual(frame.iloc[-1]["Total"], 40)


class RRPConfigTests(SimpleTestCase):
    @override_settings(INVENTORY_RRP=TEST_RRP_SETTINGS)
    def test_lists_are_split_and_trimmed(self):
        config = get_rrp_config()

        self.assertEqual(config.local_suppliers(), ["Himal Traders", "Everest Supplies"])
        self.assertEqual(config.foreign_suppliers(), ["Aero Parts Ltd"])
        self.assertEqual(config.currencies(), ["NPR", "USD", "EUR"])
        self.assertEqual(config.inspection_users()[0]["designation"], "Inspector")
        self.assertEqual(config.vat_rate, 13)
        self.assertEqual(config.custom_service_charge, 60)

    @override_settings(INVENTORY_RRP={})
    def test_defaults(self):
        config = get_rrp_config()

        self.assertEqual(config.vat_rate, DEFAULT_VAT_RATE)
        self.assertEqual(config.currencies(), [])

    @override_settings(INVENTORY_RRP={"vat_rate": "thirteen"})
    def test_invalid_vat_rate(self):
        with self.assertRaises(ImproperlyConfigured):
            get_rrp_config()


@override_settings(INVENTORY_RRP=TEST_RRP_SETTINGS)
class ViewTests(TestCase):
    def _post(self, name, payload):
        return self.client.post(
            reverse(name), data=json.dumps(payload), content_type="application/json"
        )

    def test_config_view(self):
        response = self.client.get(reverse("rrp_config"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["currency_list"], "NPR, USD,EUR")

    def test_totals_view_uses_configured_rates_for_foreign_rrp(self):
        response = self._post(
            "rrp_totals",
            {
                "rrp_number": "F-001",
                "freight_charge": 40,
                "items": [
                    {"price": 10, "forex_rate": 10, "vat": True},
                    {"price": 30, "forex_rate": 10},
                ],
            },
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(len(data["rows"]), 2)
        self.assertAlmostEqual(data["totals"]["custom_service_charge"], 60)
        # first row: (100 + 10 + 15) * 13%
        self.assertAlmostEqual(data["rows"][0]["totals"]["vat_amount"], 16.25)

    def test_totals_view_keeps_stored_shares_for_saved_foreign_rrp(self):
        response = self._post(
            "rrp_totals",
            {
                "rrp_number": "F-1",
                "items": [
                    {"price": 10, "freight_charge": 5, "customs_service_charge": 3}
                ],
            },
        )

        self.assertEqual(response.status_code, 200)
        totals = response.json()["totals"]
        self.assertAlmostEqual(totals["freight_charge"], 5)
        self.assertAlmostEqual(totals["custom_service_charge"], 3)
        self.assertAlmostEqual(totals["total"], 18)

    def test_totals_view_reads_string_foreign_flag(self):
        response = self._post(
            "rrp_totals",
            {"is_foreign": "false", "freight_charge": 0, "items": [{"price": 10}]},
        )

        self.assertEqual(response.status_code, 200)
        totals = response.json()["totals"]
        self.assertEqual(totals["custom_service_charge"], 0)
        self.assertAlmostEqual(totals["total"], 10)

    def test_totals_view_rejects_bad_items(self):
        response = self._post("rrp_totals", {"items": "oops"})

        self.assertEqual(response.status_code, 400)
        self.assertIn(TOTALS_ERROR_MESSAGE, response.json()["error"])

    def test_totals_view_rejects_invalid_json(self):
        response = self.client.post(
            reverse("rrp_totals"), data="{", content_type="application/json"
        )

        self.assertEqual(response.status_code, 400)

    def test_export_view_returns_csv(self):
        response = self._post(
            "rrp_export",
            {"type": "local", "items": [{"nac_code": "GT 0101", "price": 100}]},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "text/csv")
        body = response.content.decode()
        self.assertIn("GT 0101", body)
        self.assertIn("Total", body)

    def test_equipment_suggestions_view(self):
        response = self.client.get(
            reverse("equipment_suggestions"),
            {"equipment_list": "1001-1003, APU", "q": "1002"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["suggestions"], ["1002", "1001-1002", "1002-1003"]
        )
