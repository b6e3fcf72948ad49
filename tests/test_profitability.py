"""Tests for profitability analysis and the pricing rule."""

from datetime import date

import pytest
from inventory_pro.models import InventoryItem, ProfitType
from inventory_pro.profitability import (
    analyze_profitability,
    profit_trend,
    suggested_price,
    unit_profit,
)


@pytest.fixture
def inventory() -> list[dict]:
    return [
        {"id": "milk", "name": "Milk", "category": "Dairy", "price": 4, "costPrice": 2, "stock": 10},
        {"id": "cheese", "name": "Cheese", "category": "Dairy", "price": 10, "costPrice": 8, "stock": 3},
        {"id": "chips", "name": "Chips", "category": "Snacks", "price": 3, "costPrice": 1, "stock": 20},
        {"id": "gum", "name": "Gum", "category": "Snacks", "price": 1, "stock": 50},
    ]


def _sale(sale_id, lines, status="completed", day="2024-01-01", amount=None):
    items = [{"productId": pid, "quantity": qty, "price": price} for pid, qty, price in lines]
    total = amount if amount is not None else sum(q * p for _, q, p in lines)
    return {"id": sale_id, "date": day, "status": status, "amount": total, "items": items}


class TestUnitProfit:
    def test_with_cost(self):
        assert unit_profit(InventoryItem(id="x", price=4, cost_price=2)) == (2, 100)

    @pytest.mark.parametrize("cost", [None, 0, -1])
    def test_without_usable_cost(self, cost):
        assert unit_profit(InventoryItem(id="x", price=4, cost_price=cost)) is None


class TestAnalyzeProfitability:
    def test_per_product_profit_and_margin(self, inventory):
        sales = [
            _sale(1, [("milk", 3, 4), ("chips", 2, 3)]),
            _sale(2, [("cheese", 1, 10)]),
        ]
        report = analyze_profitability(sales, inventory)
        products = {p.name: p for p in report.products}

        assert products["Milk"].profit == 6
        assert products["Milk"].margin_pct == 100
        assert products["Chips"].profit == 4
        assert products["Chips"].margin_pct == 200
        assert products["Cheese"].profit == 2
        assert products["Cheese"].margin_pct == 25
        assert report.total_profit == 12
        assert [p.name for p in report.products] == ["Milk", "Chips", "Cheese"]

    def test_average_margin_is_mean_of_line_margins(self, inventory):
        sales = [
            _sale(1, [("milk", 100, 4)]),  # 100% margin, big revenue
            _sale(2, [("cheese", 1, 10)]),  # 25% margin
        ]
        report = analyze_profitability(sales, inventory)
        assert report.average_margin_pct == pytest.approx(62.5)
        assert report.line_items_priced == 2

    def test_items_without_cost_are_excluded_and_listed(self, inventory):
        sales = [_sale(1, [("gum", 10, 1), ("milk", 1, 4)])]
        report = analyze_profitability(sales, inventory)
        assert [p.name for p in report.products] == ["Milk"]
        assert report.items_missing_cost == ("Gum",)
        assert report.items_with_cost == 3
        assert report.items_with_cost + report.items_without_cost == report.total_items

    def test_refunded_sales_and_unknown_products_skipped(self, inventory):
        sales = [
            _sale(1, [("milk", 5, 4)], status="refunded"),
            _sale(2, [("mystery", 5, 4)]),
        ]
        report = analyze_profitability(sales, inventory)
        assert report.products == ()
        assert report.total_profit == 0
        assert report.average_margin_pct == 0

    def test_categories_and_profit_share(self, inventory):
        sales = [_sale(1, [("milk", 1, 4), ("cheese", 1, 10), ("chips", 2, 3)])]
        report = analyze_profitability(sales, inventory)
        categories = {c.name: c for c in report.categories}
        assert categories["Dairy"].profit == 4
        assert categories["Snacks"].profit == 4
        assert sum(c.percentage for c in report.categories) == pytest.approx(100)
        # tie keeps first-seen order
        assert [c.name for c in report.categories] == ["Dairy", "Snacks"]

    def test_top_n(self, inventory):
        sales = [_sale(1, [("milk", 1, 4), ("cheese", 1, 10), ("chips", 1, 3)])]
        report = analyze_profitability(sales, inventory, top_n=2)
        assert len(report.top_products) == 2
        assert len(report.products) == 3

    @pytest.mark.parametrize("sales,inventory_batch", [(None, None), ([], []), ("x", {"a": 1})])
    def test_empty_or_malformed(self, sales, inventory_batch):
        report = analyze_profitability(sales, inventory_batch)
        assert report.total_items == 0
        assert report.products == ()
        assert report.items_missing_cost == ()

    def test_idempotent(self, inventory):
        sales = [_sale(1, [("milk", 3, 4)])]
        assert analyze_profitability(sales, inventory) == analyze_profitability(sales, inventory)

    def test_huge_numbers_are_zeroed(self, inventory):
        inventory.append({"id": "gold", "name": "Gold", "price": 10**400, "costPrice": 10**400})
        sales = [_sale(1, [("milk", 10**400, 4), ("chips", 1, 3)], amount=10**400)]
        report = analyze_profitability(sales, inventory)
        assert report.total_profit == 2
        assert "Gold" in report.items_missing_cost


class TestProfitTrend:
    def test_daily_profit_next_to_sales(self, inventory):
        sales = [
            _sale(1, [("milk", 2, 4)], day="2024-01-01"),
            _sale(2, [("gum", 5, 1)], day="2024-01-02"),
            _sale(3, [("chips", 1, 3)], day="2024-01-02", status="refunded"),
        ]
        points = {p.key: p for p in profit_trend(sales, inventory, "week", date(2024, 1, 2))}
        assert len(points) == 8
        assert points["2024-01-01"].profit == 4
        assert points["2024-01-01"].sales == 8
        assert points["2024-01-02"].profit == 0
        assert points["2024-01-02"].sales == 5

    def test_year_is_monthly(self, inventory):
        points = profit_trend([], inventory, "year", date(2024, 6, 15))
        assert len(points) == 13
        assert points[0].key == "2023-06"


class TestSuggestedPrice:
    def test_percentage_markup(self):
        assert suggested_price(2.5, 40) == 3.5
        assert suggested_price("10", "25", "percentage") == 12.5

    def test_fixed_markup(self):
        assert suggested_price(2.5, 1.25, ProfitType.FIXED) == 3.75

    def test_rounds_to_cents(self):
        assert suggested_price(1, 33.333) == 1.33

    @pytest.mark.parametrize(
        "cost,margin,kind",
        [("abc", 10, "percentage"), (5, None, "fixed"), (5, 10, "bogus"), (10**400, 10, "fixed")],
    )
    def test_unusable_input(self, cost, margin, kind):
        assert suggested_price(cost, margin, kind) is None
