"""
KPI rules for work readiness goals.

Pure functions: each takes counts or rates and returns a rating dict
(rating, color, description, score plus rule-specific fields) ready for
the goal KPI response schemas.
"""

import logging
from datetime import date, timedelta
from typing import Iterable

from app.db.enums import CYCLE_LENGTH_DAYS, ReadinessLevel

logger = logging.getLogger(__name__)

GREEN = "#10b981"
LIGHT_GREEN = "#22c55e"
BLUE = "#3b82f6"
YELLOW = "#eab308"
ORANGE = "#f97316"
RED = "#ef4444"
DARK_RED = "#dc2626"
GRAY = "#6b7280"

READINESS_QUALITY = {
    ReadinessLevel.FIT.value: 100,
    ReadinessLevel.MINOR.value: 70,
    ReadinessLevel.NOT_FIT.value: 30,
}

# (minimum weighted score, grade), highest first
GRADE_BANDS = [
    (95, "A+"), (90, "A"), (85, "A-"),
    (80, "B+"), (75, "B"), (70, "B-"),
    (65, "C+"), (60, "C"), (55, "C-"),
    (50, "D"),
]


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def calculate_kpi(consecutive_days: int) -> dict:
    """Cycle KPI from consecutive submission days; three days is the floor for points."""
    if consecutive_days >= CYCLE_LENGTH_DAYS:
        rating, color, score = "Excellent", GREEN, 100
        description = "Outstanding! Complete 7-day cycle achieved."
    elif consecutive_days >= 5:
        rating, color = "Good", LIGHT_GREEN
        score = round(consecutive_days / CYCLE_LENGTH_DAYS * 100)
        description = "Good progress! Keep going to complete the cycle."
    elif consecutive_days >= 3:
        rating, color = "Average", YELLOW
        score = round(consecutive_days / CYCLE_LENGTH_DAYS * 100)
        description = "Average progress. Focus on consistency."
    else:
        rating, color, score = "No KPI Points", RED, 0
        description = "Need at least 3 consecutive days for KPI points."

    logger.debug("Consecutive days KPI: %s days -> %s", consecutive_days, score)
    return {
        "rating": rating,
        "color": color,
        "description": description,
        "score": score,
        "consecutive_days": consecutive_days,
        "max_days": CYCLE_LENGTH_DAYS,
    }


def calculate_completion_rate_kpi(
    completion_rate: float,
    current_day: int | None = None,
    total_assessments: int | None = None,
) -> dict:
    """
    KPI from a completion percentage.

    Nothing submitted yet is "Not Started"; the first two days of a cycle
    are "On Track" without points.
    """
    def result(rating: str, color: str, description: str, score: int) -> dict:
        return {
            "rating": rating,
            "color": color,
            "description": description,
            "score": score,
            "completion_rate": completion_rate,
            "max_rate": 100,
        }

    if completion_rate == 0 and not total_assessments:
        return result(
            "Not Started", GRAY,
            "KPI rating not yet started. Begin your work readiness assessments.", 0,
        )
    if current_day is not None and current_day <= 2:
        return result("On Track", BLUE, "Just started the cycle. Keep going!", 0)

    if completion_rate >= 100:
        kpi = result("Excellent", GREEN, "Outstanding! Perfect completion rate achieved.", 100)
    elif completion_rate >= 70:
        kpi = result("Good", LIGHT_GREEN, "Good progress! Keep up the consistency.", round(completion_rate))
    elif completion_rate >= 50:
        kpi = result("Average", YELLOW, "Average progress. Focus on consistency.", round(completion_rate))
    else:
        kpi = result(
            "Needs Improvement", RED, "Below average performance. Needs attention.", round(completion_rate),
        )
    logger.debug("Completion rate KPI: %.1f%% -> %s", completion_rate, kpi["score"])
    return kpi


def calculate_weekly_team_kpi(weekly_submission_rate: float, weekly_submissions: int, total_members: int) -> dict:
    """Team KPI from the share of members who submitted this week."""
    pct = round(weekly_submission_rate)
    summary = f"{weekly_submissions}/{total_members} members submitted work readiness this week ({pct}%)."
    if weekly_submission_rate >= 90:
        rating, color, description = "Excellent", GREEN, f"Excellent! {summary}"
    elif weekly_submission_rate >= 75:
        rating, color, description = "Good", BLUE, f"Good performance! {summary}"
    elif weekly_submission_rate >= 60:
        rating, color, description = "Average", YELLOW, f"Average performance. {summary}"
    elif weekly_submission_rate >= 40:
        rating, color, description = "Needs Improvement", RED, f"Needs improvement. Only {summary}"
    else:
        rating, color, description = "Poor", DARK_RED, f"Poor performance. Only {summary}"

    return {
        "rating": rating,
        "color": color,
        "description": description,
        "score": pct,
        "completion_rate": weekly_submission_rate,
        "max_rate": 100,
        "weekly_submissions": weekly_submissions,
        "total_members": total_members,
    }


def letter_grade(score: float) -> str:
    for minimum, grade in GRADE_BANDS:
        if score >= minimum:
            return grade
    return "F"


def quality_score(readiness_levels: Iterable[str]) -> float:
    """Average readiness quality (fit 100, minor 70, not fit 30); 0 with no submissions."""
    scores = [READINESS_QUALITY[level] for level in readiness_levels if level in READINESS_QUALITY]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def calculate_assignment_kpi(
    completed: int,
    total: int,
    on_time: int = 0,
    quality: float = 0.0,
    pending: int = 0,
    overdue: int = 0,
) -> dict:
    """
    Weighted assignment KPI.

    score = completion * 0.7 + on-time * 0.2 + quality * 0.1
            + pending bonus (max 5) - overdue penalty (max 10)
    """
    if total <= 0:
        return {
            "rating": "No Assignments",
            "color": GRAY,
            "description": "No work readiness assignments given yet.",
            "score": 0,
            "grade": "N/A",
            "completion_rate": 0,
            "on_time_rate": 0,
            "quality_score": 0,
            "pending_bonus": 0,
            "overdue_penalty": 0,
            "completed_assignments": 0,
            "pending_assignments": 0,
            "overdue_assignments": 0,
            "total_assignments": 0,
        }

    completion_rate = _clamp(completed / total * 100)
    on_time_rate = _clamp(on_time / total * 100)
    quality = _clamp(quality)
    pending_bonus = min(5.0, pending / total * 5)
    overdue_penalty = min(10.0, overdue / total * 10)
    weighted = completion_rate * 0.7 + on_time_rate * 0.2 + quality * 0.1 + pending_bonus - overdue_penalty

    if weighted >= 90:
        rating, color = "Excellent", GREEN
        description = "Outstanding performance! Perfect assignment completion and quality."
    elif weighted >= 75:
        rating, color = "Good", LIGHT_GREEN
        description = "Good performance! Keep up the consistency."
    elif weighted >= 60:
        rating, color = "Average", YELLOW
        description = "Average performance. Focus on completing more assignments."
    elif weighted >= 40:
        rating, color = "Below Average", ORANGE
        description = "Below average performance. Needs improvement."
    else:
        rating, color = "Needs Improvement", RED
        description = "Poor performance. Immediate attention required."

    logger.debug("Assignment KPI: %s/%s completed -> %.1f", completed, total, weighted)
    return {
        "rating": rating,
        "color": color,
        "description": description,
        "score": round(weighted),
        "grade": letter_grade(weighted),
        "completion_rate": round(completion_rate),
        "on_time_rate": round(on_time_rate),
        "quality_score": round(quality),
        "pending_bonus": round(pending_bonus),
        "overdue_penalty": round(overdue_penalty),
        "completed_assignments": completed,
        "pending_assignments": pending,
        "overdue_assignments": overdue,
        "total_assignments": total,
    }


def calculate_streaks(days: Iterable[date]) -> dict:
    """Current and longest runs of consecutive days; current ends on the latest day."""
    ordered = sorted(set(days))
    if not ordered:
        return {"current": 0, "longest": 0}

    longest = run = 1
    for previous, day in zip(ordered, ordered[1:]):
        run = run + 1 if day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
    return {"current": run, "longest": longest}
