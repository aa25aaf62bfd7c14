from __future__ import annotations
from dataclasses import dataclass

from tv_analytics.config.settings import DISCOUNT_POLICIES, ZERO_RATING_POLICIES, Settings, default_settings
from tv_analytics.exceptions.errors import ConfigurationError


@dataclass(frozen=True)
class QueryPolicy:
    """Thresholds and data-quality handling shared by the catalog queries.

    discount_policy applies to rows whose selling price exceeds the original
    price (a negative discount):
      keep    - use them as they are
      exclude - leave them out of the discount aggregates
      clamp   - raise OriginalPrice to SellingPrice so the discount is 0
      error   - refuse to compute while such rows exist

    zero_rating_policy applies to the price/rating ranking. Null and zero
    ratings never reach the divisor; "error" additionally refuses to rank
    while the table holds any.
    """

    discount_policy: str = "keep"
    zero_rating_policy: str = "exclude"

    affordable_max_price: float = 20000.0
    affordable_min_rating: float = 4.5
    brand_min_models: int = 5
    discount_min_rating: float = 4.0
    discount_min_models: int = 3
    best_value_min_rating: float = 4.0
    best_value_limit: int = 10

    def __post_init__(self) -> None:
        if self.discount_policy not in DISCOUNT_POLICIES:
            raise ConfigurationError(
                f"Unknown discount policy '{self.discount_policy}'; expected one of {', '.join(DISCOUNT_POLICIES)}"
            )
        if self.zero_rating_policy not in ZERO_RATING_POLICIES:
            raise ConfigurationError(
                f"Unknown zero-rating policy '{self.zero_rating_policy}'; expected one of {', '.join(ZERO_RATING_POLICIES)}"
            )
        if self.best_value_limit < 0:
            raise ConfigurationError("best_value_limit must be >= 0")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "QueryPolicy":
        s = settings or default_settings()
        return cls(
            discount_policy=s.discount_policy,
            zero_rating_policy=s.zero_rating_policy,
            affordable_max_price=s.affordable_max_price,
            affordable_min_rating=s.affordable_min_rating,
            brand_min_models=s.brand_min_models,
            discount_min_rating=s.discount_min_rating,
            discount_min_models=s.discount_min_models,
            best_value_min_rating=s.best_value_min_rating,
            best_value_limit=s.best_value_limit,
        )
