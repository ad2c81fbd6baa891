import pytest

from perfhub.core.exceptions import AppException
from perfhub.services.employees import EmployeeService
from perfhub.services.feedback import FeedbackService
from perfhub.services.metrics import MetricService
from perfhub.services.reviews import ReviewService
from perfhub.services.scoring import ScoringPolicy, display_score, round_half_up, score_percent

RATINGS = {"overall": 4, "communication": 5, "teamwork": 3, "technicalSkills": 4}


def test_round_half_up():
    assert round_half_up(82.5) == 83
    assert round_half_up(82.4999) == 82
    assert round_half_up(0.5) == 1


def test_overall_score_is_mean_on_percent_scale():
    # (4 + 5 + 3 + 4) / 4 = 4.0 -> 80
    assert ScoringPolicy().overall_score(RATINGS) == 80
    # (5 + 4 + 4 + 4) / 4 = 4.25 -> 85
    assert ScoringPolicy().overall_score({"overall": 5, "communication": 4, "teamwork": 4, "technicalSkills": 4}) == 85


def test_overall_score_rounds_half_up():
    # (3 + 3 + 3 + 4) / 4 = 3.25 -> 65
    assert ScoringPolicy().overall_score({"overall": 3, "communication": 3, "teamwork": 3, "technicalSkills": 4}) == 65
    # scale 8: 3/8 * 100 = 37.5 -> 38
    assert ScoringPolicy(scale_max=8).overall_score({"overall": 3, "communication": 3, "teamwork": 3, "technicalSkills": 3}) == 38


def test_weighted_overall_score():
    policy = ScoringPolicy(weights={"overall": 2.0})
    # (4*2 + 5 + 3 + 4) / 5 = 4.0 -> 80
    assert policy.overall_score(RATINGS) == 80
    policy = ScoringPolicy(weights={"communication": 3.0})
    # (4 + 5*3 + 3 + 4) / 6 = 4.333 -> 87
    assert policy.overall_score(RATINGS) == 87


def test_dimension_scores():
    assert ScoringPolicy().dimension_scores(RATINGS) == {"communication": 100, "teamwork": 60, "technicalSkills": 80}


@pytest.mark.parametrize("ratings", [
    {"overall": 0, "communication": 3, "teamwork": 3, "technicalSkills": 3},
    {"overall": 6, "communication": 3, "teamwork": 3, "technicalSkills": 3},
    {"overall": 3, "communication": 3, "teamwork": 3},
])
def test_invalid_ratings_are_rejected(ratings):
    with pytest.raises(ValueError):
        ScoringPolicy().overall_score(ratings)


def test_display_score():
    assert display_score(None) == "N/A"
    assert display_score(0) == "N/A"
    assert display_score(85) == "85"
    assert display_score(85.0) == "85"
    assert score_percent(None) == 0.0
    assert score_percent(72) == 72.0


def test_review_updates_employee_metrics_and_feedback(store, employee, admin_user):
    result = ReviewService(store, ScoringPolicy()).submit(
        employee["id"], RATINGS, "Strong quarter", admin_user["uid"], "Admin User"
    )

    stored = EmployeeService(store).get(employee["id"])
    assert stored["performanceScore"] == 80
    assert stored["metrics"] == {"communication": 100, "teamwork": 60, "technicalSkills": 80}

    metrics = MetricService(store).list_for_employee(employee["id"])
    assert sorted(m["metric"] for m in metrics) == ["communication", "teamwork", "technicalSkills"]
    assert len({m["date"] for m in metrics}) == 1

    feedback = FeedbackService(store).get(result["feedback"]["id"])
    assert feedback["category"] == "performance review"
    assert feedback["rating"] == 4
    assert feedback["content"] == "Strong quarter"


def test_review_with_invalid_rating(store, employee, admin_user):
    with pytest.raises(AppException) as exc:
        ReviewService(store, ScoringPolicy()).submit(
            employee["id"], {**RATINGS, "teamwork": 9}, "", admin_user["uid"]
        )
    assert exc.value.status_code == 422
    assert EmployeeService(store).get(employee["id"])["performanceScore"] == 0
