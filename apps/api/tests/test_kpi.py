"""Tests for the work readiness KPI rules."""
from datetime import date, timedelta

import pytest

from app.services import kpi_service


# =============================================================================
# Cycle KPI
# =============================================================================

@pytest.mark.parametrize("days, rating, score", [
    (7, "Excellent", 100),
    (9, "Excellent", 100),
    (6, "Good", 86),
    (5, "Good", 71),
    (3, "Average", 43),
    (2, "No KPI Points", 0),
    (0, "No KPI Points", 0),
])
def test_consecutive_days_kpi(days, rating, score):
    kpi = kpi_service.calculate_kpi(days)
    assert kpi["rating"] == rating
    assert kpi["score"] == score
    assert kpi["consecutive_days"] == days
    assert kpi["max_days"] == 7


# =============================================================================
# Completion rate KPI
# =============================================================================

def test_completion_rate_not_started():
    kpi = kpi_service.calculate_completion_rate_kpi(0, total_assessments=0)
    assert kpi["rating"] == "Not Started"
    assert kpi["score"] == 0


def test_completion_rate_early_cycle_is_on_track():
    kpi = kpi_service.calculate_completion_rate_kpi(29, current_day=2, total_assessments=2)
    assert kpi["rating"] == "On Track"
    assert kpi["score"] == 0


@pytest.mark.parametrize("rate, rating, score", [
    (100, "Excellent", 100),
    (80, "Good", 80),
    (70, "Good", 70),
    (57, "Average", 57),
    (20, "Needs Improvement", 20),
])
def test_completion_rate_bands(rate, rating, score):
    kpi = kpi_service.calculate_completion_rate_kpi(rate, current_day=5, total_assessments=3)
    assert (kpi["rating"], kpi["score"]) == (rating, score)
    assert kpi["max_rate"] == 100


@pytest.mark.parametrize("rate, rating", [
    (95, "Excellent"),
    (80, "Good"),
    (65, "Average"),
    (45, "Needs Improvement"),
    (10, "Poor"),
])
def test_weekly_team_kpi_bands(rate, rating):
    kpi = kpi_service.calculate_weekly_team_kpi(rate, 3, 4)
    assert kpi["rating"] == rating
    assert "3/4 members" in kpi["description"]


# =============================================================================
# Assignment KPI
# =============================================================================

@pytest.mark.parametrize("score, grade", [
    (96, "A+"), (90, "A"), (72, "B-"), (61, "C"), (50, "D"), (49.9, "F"),
])
def test_letter_grade(score, grade):
    assert kpi_service.letter_grade(score) == grade


def test_quality_score():
    assert kpi_service.quality_score([]) == 0
    assert kpi_service.quality_score(["fit", "fit"]) == 100
    assert kpi_service.quality_score(["fit", "minor", "not_fit"]) == pytest.approx(200 / 3)


def test_assignment_kpi_without_assignments():
    kpi = kpi_service.calculate_assignment_kpi(0, 0)
    assert kpi["rating"] == "No Assignments"
    assert kpi["grade"] == "N/A"


def test_assignment_kpi_perfect_month():
    kpi = kpi_service.calculate_assignment_kpi(10, 10, on_time=10, quality=100)
    assert kpi["score"] == 100
    assert kpi["rating"] == "Excellent"
    assert kpi["grade"] == "A+"


def test_assignment_kpi_weighting_with_pending_bonus():
    # 50% done, all on time, fit every time, the rest still pending:
    # 35 + 10 + 10 + 2.5
    kpi = kpi_service.calculate_assignment_kpi(5, 10, on_time=5, quality=100, pending=5)
    assert kpi["completion_rate"] == 50
    assert kpi["pending_bonus"] == 2
    assert kpi["rating"] == "Below Average"
    assert kpi["grade"] == "C-"


def test_assignment_kpi_overdue_penalty_is_capped():
    kpi = kpi_service.calculate_assignment_kpi(2, 4, on_time=2, quality=100, overdue=2)
    assert kpi["overdue_penalty"] == 5
    assert kpi["score"] == 50

    worst = kpi_service.calculate_assignment_kpi(0, 4, overdue=4)
    assert worst["overdue_penalty"] == 10
    assert worst["rating"] == "Needs Improvement"
    assert worst["grade"] == "F"


# =============================================================================
# Streaks
# =============================================================================

def test_streaks():
    start = date(2026, 3, 2)
    days = [start, start + timedelta(days=1), start + timedelta(days=2), start + timedelta(days=5), start + timedelta(days=6)]
    assert kpi_service.calculate_streaks(days) == {"current": 2, "longest": 3}
    assert kpi_service.calculate_streaks([]) == {"current": 0, "longest": 0}
