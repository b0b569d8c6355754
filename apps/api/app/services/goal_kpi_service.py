"""
Goal KPI service - work readiness goals for workers and their team leaders.

Workers are measured on their 7-day submission cycle and on how they
handle assignments each month; team leaders see the same numbers rolled
up across their active team.
"""

import calendar
from collections import Counter, defaultdict
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.enums import CYCLE_LENGTH_DAYS, AssignmentStatus, ReadinessLevel
from app.db.models import User, WorkReadiness, WorkReadinessAssignment
from app.services import kpi_service, work_readiness_service
from app.utils.dates import app_today, as_utc, utcnow


TREND_WEEKS = 4


def _pct(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return min(100, round(part / whole * 100))


def month_bounds(year: int | None = None, month: int | None = None) -> tuple[date, date]:
    """First and last calendar day of the month (current month by default)."""
    today = app_today()
    year = year or today.year
    month = month or today.month
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def _cycle_days(cycle_start: date) -> list[date]:
    return [cycle_start + timedelta(days=i) for i in range(CYCLE_LENGTH_DAYS)]


def _worker_assessments(db: Session, worker_id: UUID, start: date, end: date) -> list[WorkReadiness]:
    return work_readiness_service.assessments_between(db, [worker_id], start, end)


# =============================================================================
# Worker goals
# =============================================================================


def performance_trend(db: Session, worker_id: UUID, weeks: int = TREND_WEEKS) -> list[dict]:
    """Submission days per week for the last `weeks` 7-day windows, oldest first."""
    today = app_today()
    start = today - timedelta(days=weeks * 7 - 1)
    days = {a.submitted_date for a in _worker_assessments(db, worker_id, start, today)}
    trend = []
    for week in range(weeks):
        week_start = start + timedelta(days=week * 7)
        week_end = week_start + timedelta(days=6)
        submitted = sum(1 for d in days if week_start <= d <= week_end)
        trend.append({
            "week_start": week_start,
            "week_end": week_end,
            "submitted_days": submitted,
            "completion_rate": _pct(submitted, 7),
        })
    return trend


def get_weekly_progress(db: Session, worker: User) -> dict:
    """Progress through the worker's current cycle, day by day."""
    latest = work_readiness_service.latest_assessment(db, worker.id)
    if latest is None:
        return {
            "has_cycle": False,
            "week_label": "No Active Cycle",
            "completed_days": 0,
            "total_days": CYCLE_LENGTH_DAYS,
            "completion_rate": 0,
            "kpi": kpi_service.calculate_kpi(0),
            "streaks": {"current": 0, "longest": 0},
            "top_performing_days": 0,
            "cycle": None,
            "daily_breakdown": [],
            "performance_trend": performance_trend(db, worker.id),
        }

    window = _cycle_days(latest.cycle_start)
    by_day = {a.submitted_date: a for a in _worker_assessments(db, worker.id, window[0], window[-1])}
    breakdown = []
    for day in window:
        assessment = by_day.get(day)
        breakdown.append({
            "date": day,
            "day_name": day.strftime("%a"),
            "completed": assessment is not None,
            "readiness_level": assessment.readiness_level if assessment else None,
            "fatigue_level": assessment.fatigue_level if assessment else None,
            "mood": assessment.mood if assessment else None,
        })

    return {
        "has_cycle": True,
        "week_label": f"Cycle Day {latest.cycle_day} of {CYCLE_LENGTH_DAYS}",
        "completed_days": latest.streak_days,
        "total_days": CYCLE_LENGTH_DAYS,
        "completion_rate": _pct(latest.streak_days, CYCLE_LENGTH_DAYS),
        "kpi": kpi_service.calculate_kpi(latest.streak_days),
        "streaks": kpi_service.calculate_streaks(by_day.keys()),
        "top_performing_days": sum(
            1 for a in by_day.values() if a.readiness_level == ReadinessLevel.FIT.value
        ),
        "cycle": {
            "cycle_start": latest.cycle_start,
            "cycle_day": latest.cycle_day,
            "streak_days": latest.streak_days,
            "cycle_completed": latest.cycle_completed,
        },
        "daily_breakdown": breakdown,
        "performance_trend": performance_trend(db, worker.id),
    }


def _assignment_counts(assignments: list[WorkReadinessAssignment]) -> dict:
    """On-time means completed no later than due_time; pending past due counts as overdue."""
    now = utcnow()
    counts = {"total": 0, "completed": 0, "on_time": 0, "late": 0, "pending": 0, "overdue": 0}
    for assignment in assignments:
        if assignment.status == AssignmentStatus.CANCELLED.value:
            continue
        counts["total"] += 1
        if assignment.status == AssignmentStatus.COMPLETED.value:
            counts["completed"] += 1
            completed_at = as_utc(assignment.completed_at)
            if completed_at is not None and completed_at <= as_utc(assignment.due_time):
                counts["on_time"] += 1
            else:
                counts["late"] += 1
        elif assignment.status == AssignmentStatus.OVERDUE.value or as_utc(assignment.due_time) <= now:
            counts["overdue"] += 1
        else:
            counts["pending"] += 1
    return counts


def _month_assignments(db: Session, worker_ids: list[UUID], start: date, end: date) -> list[WorkReadinessAssignment]:
    if not worker_ids:
        return []
    return db.query(WorkReadinessAssignment).filter(
        WorkReadinessAssignment.worker_id.in_(worker_ids),
        WorkReadinessAssignment.assigned_date >= start,
        WorkReadinessAssignment.assigned_date <= end,
    ).all()


def _linked_readiness_levels(db: Session, assignments: list[WorkReadinessAssignment]) -> list[str]:
    ids = [a.work_readiness_id for a in assignments if a.work_readiness_id]
    if not ids:
        return []
    rows = db.query(WorkReadiness.readiness_level).filter(WorkReadiness.id.in_(ids)).all()
    return [row.readiness_level for row in rows]


def _assignment_kpi(db: Session, assignments: list[WorkReadinessAssignment]) -> tuple[dict, dict]:
    counts = _assignment_counts(assignments)
    quality = kpi_service.quality_score(_linked_readiness_levels(db, assignments))
    kpi = kpi_service.calculate_assignment_kpi(
        completed=counts["completed"],
        total=counts["total"],
        on_time=counts["on_time"],
        quality=quality,
        pending=counts["pending"],
        overdue=counts["overdue"],
    )
    return counts, kpi


def get_worker_assignment_kpi(db: Session, worker: User, year: int | None = None, month: int | None = None) -> dict:
    start, end = month_bounds(year, month)
    counts, kpi = _assignment_kpi(db, _month_assignments(db, [worker.id], start, end))
    return {
        "worker": worker,
        "period_start": start,
        "period_end": end,
        **counts,
        "kpi": kpi,
    }


# =============================================================================
# Team leader goals
# =============================================================================


def _member_cycle_kpi(latest: WorkReadiness | None, submitted_days: set[date]) -> dict:
    """Completion-rate KPI over the member's current cycle window."""
    if latest is None:
        return {
            "cycle_day": None,
            "streak_days": 0,
            "cycle_days_submitted": 0,
            "cycle_completion_rate": 0,
            "kpi": kpi_service.calculate_completion_rate_kpi(0, total_assessments=0),
        }
    window = _cycle_days(latest.cycle_start)
    in_cycle = sum(1 for day in window if day in submitted_days)
    rate = _pct(in_cycle, CYCLE_LENGTH_DAYS)
    return {
        "cycle_day": latest.cycle_day,
        "streak_days": latest.streak_days,
        "cycle_days_submitted": in_cycle,
        "cycle_completion_rate": rate,
        "kpi": kpi_service.calculate_completion_rate_kpi(
            rate, current_day=latest.cycle_day, total_assessments=in_cycle,
        ),
    }


def _latest_by_worker(db: Session, worker_ids: list[UUID]) -> dict[UUID, WorkReadiness]:
    return {
        worker_id: latest
        for worker_id in worker_ids
        if (latest := work_readiness_service.latest_assessment(db, worker_id)) is not None
    }


def get_team_weekly_kpi(db: Session, leader: User) -> dict:
    """This week's team submission KPI plus each member's cycle KPI."""
    members = work_readiness_service.team_members(db, leader.id)
    member_ids = [m.id for m in members]
    today = app_today()
    week_start = today - timedelta(days=6)
    earliest = today - timedelta(days=CYCLE_LENGTH_DAYS * 2)

    latest = _latest_by_worker(db, member_ids)
    recent = work_readiness_service.assessments_between(db, member_ids, earliest, today)
    days_by_worker: dict[UUID, set[date]] = defaultdict(set)
    for assessment in recent:
        days_by_worker[assessment.worker_id].add(assessment.submitted_date)
    this_week = [a for a in recent if a.submitted_date >= week_start]
    week_counts = Counter(a.worker_id for a in this_week)

    individual = []
    for member in members:
        individual.append({
            "worker": member,
            "submissions_this_week": week_counts.get(member.id, 0),
            **_member_cycle_kpi(latest.get(member.id), days_by_worker[member.id]),
        })
    individual.sort(key=lambda row: row["kpi"]["score"], reverse=True)

    submitted = len(week_counts)
    rate = _pct(submitted, len(members))
    fatigue = [a.fatigue_level for a in this_week]
    return {
        "week_start": week_start,
        "week_end": today,
        "total_members": len(members),
        "members_submitted": submitted,
        "team_kpi": kpi_service.calculate_weekly_team_kpi(rate, submitted, len(members)),
        "readiness_breakdown": work_readiness_service.readiness_breakdown(this_week),
        "average_fatigue": round(sum(fatigue) / len(fatigue), 1) if fatigue else None,
        "individual_kpis": individual,
    }


def get_team_assignment_summary(db: Session, leader: User, year: int | None = None, month: int | None = None) -> dict:
    """Monthly assignment KPI for each member and for the team as a whole."""
    start, end = month_bounds(year, month)
    members = work_readiness_service.team_members(db, leader.id)
    assignments = _month_assignments(db, [m.id for m in members], start, end)
    by_worker: dict[UUID, list[WorkReadinessAssignment]] = defaultdict(list)
    for assignment in assignments:
        by_worker[assignment.worker_id].append(assignment)

    rows = []
    for member in members:
        counts, kpi = _assignment_kpi(db, by_worker[member.id])
        rows.append({"worker": member, **counts, "kpi": kpi})
    rows.sort(key=lambda row: row["kpi"]["score"], reverse=True)

    team_counts, team_kpi = _assignment_kpi(db, assignments)
    return {
        "period_start": start,
        "period_end": end,
        "total_members": len(members),
        "team": {**team_counts, "kpi": team_kpi},
        "members": rows,
    }


def _weekly_trends(assessments: list[WorkReadiness], member_count: int, start: date, end: date) -> list[dict]:
    """7-day buckets from start; the last one may be short."""
    pairs = {(a.worker_id, a.submitted_date) for a in assessments}
    trends = []
    week_start = start
    while week_start <= end:
        week_end = min(week_start + timedelta(days=6), end)
        in_week = [(w, d) for w, d in pairs if week_start <= d <= week_end]
        span = (week_end - week_start).days + 1
        trends.append({
            "week_start": week_start,
            "week_end": week_end,
            "submissions": len(in_week),
            "active_workers": len({w for w, _ in in_week}),
            "completion_rate": _pct(len(in_week), member_count * span),
        })
        week_start = week_end + timedelta(days=1)
    return trends


def get_monitoring_dashboard(db: Session, leader: User, time_range: int = 30) -> dict:
    """Current cycle per member, cycles completed in the window, and weekly trends."""
    members = work_readiness_service.team_members(db, leader.id)
    member_ids = [m.id for m in members]
    today = app_today()
    since = today - timedelta(days=time_range - 1)
    assessments = work_readiness_service.assessments_between(db, member_ids, since, today)
    latest = _latest_by_worker(db, member_ids)

    current = []
    for member in members:
        last = latest.get(member.id)
        if last is None:
            status = "No Cycle Started"
        elif last.cycle_completed:
            status = "Cycle Completed"
        else:
            status = "Cycle In Progress"
        current.append({
            "worker": member,
            "status": status,
            "cycle_start": last.cycle_start if last else None,
            "cycle_day": last.cycle_day if last else 0,
            "streak_days": last.streak_days if last else 0,
            "last_submission": last.submitted_date if last else None,
            "kpi": kpi_service.calculate_kpi(last.streak_days if last else 0),
        })

    completed_cycles = [
        {
            "worker": a.worker,
            "cycle_start": a.cycle_start,
            "completed_on": a.submitted_date,
            "kpi": kpi_service.calculate_kpi(a.streak_days),
        }
        for a in assessments if a.cycle_completed
    ]
    with_cycles = [row["kpi"]["score"] for row in current if row["status"] != "No Cycle Started"]
    active = {a.worker_id for a in assessments}

    return {
        "time_range": time_range,
        "period_start": since,
        "period_end": today,
        "current_cycles": current,
        "completed_cycles": completed_cycles,
        "team_summary": {
            "total_members": len(members),
            "active_members": len(active),
            "completed_cycles": len(completed_cycles),
            "average_cycles_per_member": round(len(completed_cycles) / len(members), 2) if members else 0,
            "team_average_kpi": round(sum(with_cycles) / len(with_cycles), 1) if with_cycles else 0,
        },
        "weekly_trends": _weekly_trends(assessments, len(members), since, today),
    }


def get_monthly_performance(db: Session, leader: User, year: int | None = None, month: int | None = None) -> dict:
    """
    Month-to-date submission and assignment performance.

    Days elapsed stop at today for the current month.

    Raises:
        ValueError: the month has not started yet
    """
    start, end = month_bounds(year, month)
    today = app_today()
    if start > today:
        raise ValueError("Month has not started yet")
    end = min(end, today)
    days_elapsed = (end - start).days + 1

    members = work_readiness_service.team_members(db, leader.id)
    member_ids = [m.id for m in members]
    assessments = work_readiness_service.assessments_between(db, member_ids, start, end)
    assignments = _month_assignments(db, member_ids, start, end)
    by_worker: dict[UUID, list[WorkReadiness]] = defaultdict(list)
    for assessment in assessments:
        by_worker[assessment.worker_id].append(assessment)
    assignments_by_worker: dict[UUID, list[WorkReadinessAssignment]] = defaultdict(list)
    for assignment in assignments:
        assignments_by_worker[assignment.worker_id].append(assignment)

    rows = []
    for member in members:
        own = by_worker[member.id]
        days = len({a.submitted_date for a in own})
        rate = _pct(days, days_elapsed)
        _, assignment_kpi = _assignment_kpi(db, assignments_by_worker[member.id])
        rows.append({
            "worker": member,
            "submission_days": days,
            "submission_rate": rate,
            "completed_cycles": sum(1 for a in own if a.cycle_completed),
            "readiness_breakdown": work_readiness_service.readiness_breakdown(own),
            "kpi": kpi_service.calculate_completion_rate_kpi(rate, total_assessments=days),
            "assignment_kpi": assignment_kpi,
        })
    rows.sort(key=lambda row: row["submission_rate"], reverse=True)

    average = round(sum(r["submission_rate"] for r in rows) / len(rows), 1) if rows else 0
    _, team_assignment_kpi = _assignment_kpi(db, assignments)
    insights = []
    if rows and rows[0]["submission_days"]:
        insights.append(f"Top performer: {rows[0]['worker'].display_name} ({rows[0]['submission_rate']}% of days).")
    lagging = [r for r in rows if r["submission_rate"] < 50]
    if lagging:
        insights.append(f"{len(lagging)} member(s) submitted on fewer than half of the days so far.")
    not_fit = sum(1 for a in assessments if a.readiness_level == ReadinessLevel.NOT_FIT.value)
    if not_fit:
        insights.append(f"{not_fit} not-fit-for-work assessment(s) this month.")

    return {
        "period_start": start,
        "period_end": end,
        "days_elapsed": days_elapsed,
        "team_summary": {
            "total_members": len(members),
            "total_submissions": len(assessments),
            "average_submission_rate": average,
            "completed_cycles": sum(r["completed_cycles"] for r in rows),
            "readiness_breakdown": work_readiness_service.readiness_breakdown(assessments),
            "team_kpi": kpi_service.calculate_completion_rate_kpi(average, total_assessments=len(assessments)),
            "assignment_kpi": team_assignment_kpi,
        },
        "members": rows,
        "weekly_trends": _weekly_trends(assessments, len(members), start, end),
        "insights": insights,
    }
