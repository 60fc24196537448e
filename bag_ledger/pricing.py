"""
Pricing Engine Module

Computes the next listed price of a bag from its pre-sale price using a
three-tier escalation schedule, and splits a sale price into the seller's
payout and the ledger's retained fee. All division truncates toward zero.

    tier 1  [0, T1)    x 200/100
    tier 2  [T1, T2)   x 130/100
    tier 3  [T2, inf)  x 115/100
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from . import safe_math


@dataclass(frozen=True)
class PriceTier:
    level: int
    lower: int            # inclusive
    upper: Optional[int]  # exclusive, None for unbounded
    scale_top: int
    scale_bottom: int

    def contains(self, price: int) -> bool:
        return price >= self.lower and (self.upper is None or price < self.upper)


class PricingEngine:
    """Tiered price escalation and payout split"""

    SCALE_BOTTOM = 100
    PERCENT = 100

    def __init__(self, first_step_limit: int, second_step_limit: int, payout_percent: int = 85):
        if first_step_limit >= second_step_limit:
            raise ValueError("first_step_limit must be below second_step_limit")
        if not 0 < payout_percent <= self.PERCENT:
            raise ValueError("payout_percent must be within (0, 100]")

        self.payout_percent = payout_percent
        self.tiers: Tuple[PriceTier, ...] = (
            PriceTier(1, 0, first_step_limit, 200, self.SCALE_BOTTOM),
            PriceTier(2, first_step_limit, second_step_limit, 130, self.SCALE_BOTTOM),
            PriceTier(3, second_step_limit, None, 115, self.SCALE_BOTTOM),
        )

    def tier_for(self, price: int) -> PriceTier:
        """Tier selected by the price before the pending sale"""
        for tier in self.tiers:
            if tier.contains(price):
                return tier
        raise ValueError(f"No pricing tier for {price}")

    def next_price(self, price: int) -> int:
        tier = self.tier_for(price)
        return safe_math.mul_div(price, tier.scale_top, tier.scale_bottom)

    def seller_payout(self, sale_price: int) -> int:
        return safe_math.mul_div(sale_price, self.payout_percent, self.PERCENT)

    def fee(self, sale_price: int) -> int:
        """Share of the sale price the ledger keeps"""
        return safe_math.sub(sale_price, self.seller_payout(sale_price))
