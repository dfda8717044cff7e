# agrichain/services/rating_service.py

from __future__ import annotations

import math
from collections import defaultdict
from typing import Any, Dict, Iterable

from agrichain.models.common import now_utc, to_float

STAR_FIELDS = {
    5: "fiveStarCount",
    4: "fourStarCount",
    3: "threeStarCount",
    2: "twoStarCount",
    1: "oneStarCount",
}


def star_bucket(value: float) -> int:
    """Half-up rounding into 1..5 (4.5 counts as five stars)."""
    return min(5, max(1, int(math.floor(value + 0.5))))


def compute_rating_stats(user_id: str, ratings: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Aggregate raw rating documents into the stats document shape:
    overall average, per-type averages and counts, star histogram.
    """
    total = 0
    score_sum = 0.0
    type_sum: Dict[str, float] = defaultdict(float)
    type_count: Dict[str, int] = defaultdict(int)
    stars = {field: 0 for field in STAR_FIELDS.values()}

    for r in ratings:
        value = to_float(r.get("rating"), 0.0)
        if value <= 0:
            continue
        total += 1
        score_sum += value
        rating_type = r.get("ratingType") or "overall"
        type_sum[rating_type] += value
        type_count[rating_type] += 1
        stars[STAR_FIELDS[star_bucket(value)]] += 1

    return {
        "userId": user_id,
        "averageRating": round(score_sum / total, 2) if total else 0.0,
        "totalRatings": total,
        "ratingsByType": {k: round(type_sum[k] / type_count[k], 2) for k in type_count},
        "countsByType": dict(type_count),
        **stars,
        "lastUpdated": now_utc(),
    }
