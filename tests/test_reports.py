"""
Tests for reports.py
"""
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from reports import build_spending_report, monthly_cost
from tests.factories import TODAY


def _subscription(name, price, billing_cycle, category, days_until):
    return SimpleNamespace(
        service_name=name,
        price=Decimal(price),
        billing_cycle=billing_cycle,
        category=category,
        next_payment_date=TODAY + timedelta(days=days_until),
    )


@pytest.fixture
def subscriptions():
    return [
        _subscription("Netflix", "15.99", "Monthly", "Entertainment", -2),
        _subscription("Spotify", "9.99", "Monthly", "Music", 6),
        _subscription("Domain", "120.00", "Yearly", "Utilities", 30),
        _subscription("Gym", "40.00", "Monthly", "Health", -40),
    ]


def test_monthly_cost_normalises_yearly():
    assert monthly_cost(_subscription("Domain", "120.00", "Yearly", "x", 0)) == 10
    assert monthly_cost(_subscription("Gym", "40.00", "Monthly", "x", 0)) == 40


def test_totals(subscriptions):
    report = build_spending_report(subscriptions, TODAY)

    assert report["total_monthly_spend"] == Decimal("75.98")
    assert report["total_yearly_spend"] == Decimal("911.76")
    assert report["active_count"] == 4
    assert report["average_monthly_cost"] == Decimal("19.00")
    assert report["highest_monthly_cost"] == Decimal("40.00")
    assert report["lowest_monthly_cost"] == Decimal("9.99")


def test_categories_use_monthly_cost(subscriptions):
    report = build_spending_report(subscriptions, TODAY)

    assert report["category_spending"] == {
        "Entertainment": Decimal("15.99"),
        "Music": Decimal("9.99"),
        "Utilities": Decimal("10.00"),
        "Health": Decimal("40.00"),
    }
    assert report["category_counts"] == {
        "Entertainment": 1,
        "Music": 1,
        "Utilities": 1,
        "Health": 1,
    }
    assert [s.service_name for s in report["top_subscriptions"]] == [
        "Gym",
        "Netflix",
        "Domain",
        "Spotify",
    ]


def test_six_month_trend_oldest_first(subscriptions):
    trends = build_spending_report(subscriptions, TODAY)["monthly_trends"]

    assert [t["month"] for t in trends] == [
        "Oct 2025",
        "Nov 2025",
        "Dec 2025",
        "Jan 2026",
        "Feb 2026",
        "Mar 2026",
    ]
    assert trends[-1]["month_short"] == "Mar"
    # only Netflix's recent payment falls inside each shifted window
    assert {t["amount"] for t in trends} == {Decimal("15.99")}
    assert {t["subscription_count"] for t in trends} == {1}


def test_trend_falls_back_to_current_totals(subscriptions):
    upcoming = [s for s in subscriptions if s.next_payment_date > TODAY]

    trends = build_spending_report(upcoming, TODAY)["monthly_trends"]

    assert len(trends) == 6
    assert {t["amount"] for t in trends} == {Decimal("19.99")}
    assert {t["subscription_count"] for t in trends} == {2}


def test_empty():
    report = build_spending_report([], TODAY)

    assert report["active_count"] == 0
    assert report["total_monthly_spend"] == 0
    assert report["category_spending"] == {}
    assert report["monthly_trends"] == []
