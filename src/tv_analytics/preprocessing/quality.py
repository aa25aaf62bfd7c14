from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict
import pandas as pd

from tv_analytics.logging.logger import get_logger

log = get_logger("preprocessing.quality")

RATING_MIN = 0.0
RATING_MAX = 5.0


@dataclass(frozen=True)
class QualityReport:
    """Counts of rows that break the assumptions the analyses rely on.

    The audit never modifies the data; what to do with the flagged rows is
    decided per query by the configured policy.
    """

    total_rows: int
    negative_price_rows: int
    discount_inversion_rows: int
    null_rating_rows: int
    zero_rating_rows: int
    rating_out_of_range_rows: int

    @property
    def clean(self) -> bool:
        return not any(v for k, v in self.as_dict().items() if k != "total_rows")

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def audit_listings(df: pd.DataFrame) -> QualityReport:
    selling = df["SellingPrice"]
    original = df["OriginalPrice"]
    rating = df["Rating"]

    negative = (selling < 0).fillna(False) | (original < 0).fillna(False)
    inverted = (selling > original).fillna(False)
    out_of_range = ((rating < RATING_MIN) | (rating > RATING_MAX)).fillna(False)

    report = QualityReport(
        total_rows=len(df),
        negative_price_rows=int(negative.sum()),
        discount_inversion_rows=int(inverted.sum()),
        null_rating_rows=int(rating.isna().sum()),
        zero_rating_rows=int((rating == 0).fillna(False).sum()),
        rating_out_of_range_rows=int(out_of_range.sum()),
    )
    if report.clean:
        log.info("Data quality audit passed", extra={"rows": report.total_rows})
    else:
        log.warning("Data quality issues found", extra=report.as_dict())
    return report
