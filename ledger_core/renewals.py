"""
Renewal detection.

Two renewal rules coexist and feed different screens, so they are kept
as separate functions and never merged:

- variant rule (customer view): within one customer, every repeat of the
  exact same name/type/plan combination counts as one renewal.
- loyalty rule (tool view): per tool name across all customers,
  renewals = line items sold - distinct customers who bought it.

The two can disagree: one customer buying "Netflix/Shared/Premium" and
"Netflix/Private/Standard" is 0 variant renewals but 1 loyalty renewal.
"""
from typing import Dict, Iterable

from ledger_core.models import CustomerProfile
from ledger_core.ranking import percent


def variant_renewals(counts: Iterable[int]) -> int:
    """Renewals for one customer given the occurrence count of each variant."""
    return sum(max(0, count - 1) for count in counts)


def customer_renewals(profile: CustomerProfile) -> int:
    """Variant-rule renewals for a single customer."""
    return variant_renewals(v.count for v in profile.variants.values())


def total_customer_renewals(profiles: Iterable[CustomerProfile]) -> int:
    """Variant-rule renewals summed over every customer."""
    return sum(customer_renewals(p) for p in profiles)


def tool_loyalty_renewals(total_sales: int, distinct_customers: int) -> int:
    """Loyalty-rule renewals for one tool: sales beyond one per customer."""
    return max(0, total_sales - distinct_customers)


def tool_renewal_counts(profiles: Iterable[CustomerProfile]) -> Dict[str, int]:
    """
    Variant-rule renewals rolled up per tool name.

    Feeds the tool-renewal leaderboard; tools without any repeat
    purchase are left out.
    """
    counts: Dict[str, int] = {}
    for profile in profiles:
        for variant in profile.variants.values():
            if variant.count > 1:
                counts[variant.name] = counts.get(variant.name, 0) + variant.count - 1
    return counts


def growth_rate(renewals: int, customer_count: int, decimals: int = 1) -> float:
    """Renewals per customer as a percentage; 0 when there are no customers."""
    return percent(renewals, customer_count, decimals)
