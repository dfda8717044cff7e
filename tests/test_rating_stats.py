import pytest

from agrichain.services.rating_service import compute_rating_stats, star_bucket


@pytest.mark.parametrize("value,expected", [(1, 1), (1.4, 1), (2.5, 3), (4.49, 4), (4.5, 5), (5, 5)])
def test_star_bucket_rounds_half_up(value, expected):
    assert star_bucket(value) == expected


def test_compute_rating_stats():
    stats = compute_rating_stats("FRM1", [
        {"rating": 5, "ratingType": "quality"},
        {"rating": 4, "ratingType": "delivery"},
        {"rating": 4},
        {"rating": 0},
    ])
    assert stats["userId"] == "FRM1"
    assert stats["totalRatings"] == 3
    assert stats["averageRating"] == 4.33
    assert stats["ratingsByType"] == {"quality": 5.0, "delivery": 4.0, "overall": 4.0}
    assert stats["countsByType"] == {"quality": 1, "delivery": 1, "overall": 1}
    assert stats["fiveStarCount"] == 1
    assert stats["fourStarCount"] == 2
    assert stats["oneStarCount"] == 0


def test_compute_rating_stats_empty():
    stats = compute_rating_stats("FRM1", [])
    assert stats["averageRating"] == 0.0
    assert stats["totalRatings"] == 0
    assert stats["ratingsByType"] == {}
