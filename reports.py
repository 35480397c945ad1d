"""
Spending report over all subscriptions.

Yearly prices are normalised to a monthly cost (price / 12) before they are
summed or compared.
"""
from decimal import Decimal, ROUND_HALF_UP

from dateutil.relativedelta import relativedelta

CENTS = Decimal("0.01")
TREND_MONTHS = 6


def monthly_cost(subscription):
    if subscription.billing_cycle == "Yearly":
        return subscription.price / 12
    return subscription.price


def _money(value):
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _monthly_trends(subscriptions, today, total_monthly_spend):
    trends = []
    for months_back in range(TREND_MONTHS - 1, -1, -1):
        month = today - relativedelta(months=months_back)
        window_start = today - relativedelta(months=months_back + 1)
        active = [
            s
            for s in subscriptions
            if s.next_payment_date <= today
            and s.next_payment_date - relativedelta(months=months_back) >= window_start
        ]
        spend = sum((monthly_cost(s) for s in active), Decimal("0"))
        # months with no matching payments fall back to the current totals
        trends.append(
            {
                "month": month.strftime("%b %Y"),
                "month_short": month.strftime("%b"),
                "amount": _money(spend if spend > 0 else total_monthly_spend),
                "subscription_count": len(active) or len(subscriptions),
            }
        )
    return trends


def build_spending_report(subscriptions, today):
    if not subscriptions:
        return {
            "total_monthly_spend": _money(0),
            "total_yearly_spend": _money(0),
            "active_count": 0,
            "average_monthly_cost": _money(0),
            "highest_monthly_cost": _money(0),
            "lowest_monthly_cost": _money(0),
            "category_spending": {},
            "category_counts": {},
            "top_subscriptions": [],
            "monthly_trends": [],
        }

    category_spending = {}
    category_counts = {}
    for s in subscriptions:
        category_spending[s.category] = category_spending.get(
            s.category, Decimal("0")
        ) + monthly_cost(s)
        category_counts[s.category] = category_counts.get(s.category, 0) + 1

    monthly_total = sum(
        (s.price for s in subscriptions if s.billing_cycle == "Monthly"), Decimal("0")
    )
    yearly_total = sum(
        (s.price for s in subscriptions if s.billing_cycle == "Yearly"), Decimal("0")
    )
    total_monthly_spend = monthly_total + yearly_total / 12
    costs = [monthly_cost(s) for s in subscriptions]

    return {
        "total_monthly_spend": _money(total_monthly_spend),
        "total_yearly_spend": _money(monthly_total * 12 + yearly_total),
        "active_count": len(subscriptions),
        "average_monthly_cost": _money(total_monthly_spend / len(subscriptions)),
        "highest_monthly_cost": _money(max(costs)),
        "lowest_monthly_cost": _money(min(costs)),
        "category_spending": {
            category: _money(amount) for category, amount in category_spending.items()
        },
        "category_counts": category_counts,
        "top_subscriptions": sorted(subscriptions, key=monthly_cost, reverse=True)[:5],
        "monthly_trends": _monthly_trends(subscriptions, today, total_monthly_spend),
    }
