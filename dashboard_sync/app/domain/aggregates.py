"""
Aggregate computations behind the statistics and trend resources.

These run inside data-access functions (see ``adapters.in_memory``); the
cache core only ever sees their results.
"""

import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Literal, Optional, Sequence

from .models import (
    Client,
    ClientStats,
    MonthlyRevenue,
    Project,
    ProjectStats,
    RevenueByType,
    RevenueEntry,
    RevenueStats,
)


def _growth(current: float, previous: float) -> float:
    return (current - previous) / previous * 100 if previous > 0 else 0.0


def _total(entries: Iterable[RevenueEntry]) -> float:
    return sum(entry.amount for entry in entries)


def client_stats(clients: Sequence[Client], now: Optional[datetime] = None) -> ClientStats:
    """Counts by status and entity type plus the 90 day conversion rate."""
    now = now or datetime.now(timezone.utc)
    thirty_days_ago = now - timedelta(days=30)
    ninety_days_ago = now - timedelta(days=90)

    prospects = sum(1 for c in clients if c.status == "prospect")
    converted = sum(
        1 for c in clients
        if c.status == "active" and c.updated_at >= ninety_days_ago and c.created_at < ninety_days_ago
    )
    candidates = prospects + converted

    return ClientStats(
        total=len(clients),
        active=sum(1 for c in clients if c.status == "active"),
        prospects=prospects,
        inactive=sum(1 for c in clients if c.status == "inactive"),
        business_clients=sum(1 for c in clients if c.entity_type == "business"),
        individual_clients=sum(1 for c in clients if c.entity_type == "individual"),
        recently_added=sum(1 for c in clients if c.created_at >= thirty_days_ago),
        conversion_rate=converted / candidates * 100 if candidates else 0.0,
    )


def project_stats(projects: Sequence[Project], today: Optional[date] = None) -> ProjectStats:
    today = today or date.today()
    with_value = [p.amount for p in projects if p.amount and p.amount > 0]
    with_hours = [p.actual_hours for p in projects if p.actual_hours > 0]
    completed = sum(1 for p in projects if p.status == "completed")

    return ProjectStats(
        total=len(projects),
        pending=sum(1 for p in projects if p.status == "pending"),
        in_progress=sum(1 for p in projects if p.status == "in_progress"),
        completed=completed,
        on_hold=sum(1 for p in projects if p.status == "on_hold"),
        overdue=sum(1 for p in projects if is_overdue(p, today)),
        total_value=sum(with_value),
        average_value=sum(with_value) / len(with_value) if with_value else 0.0,
        completion_rate=completed / len(projects) * 100 if projects else 0.0,
        average_hours=sum(with_hours) / len(with_hours) if with_hours else 0.0,
    )


def is_overdue(project: Project, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return project.due_date is not None and project.due_date < today and project.status != "completed"


def days_until_due(project: Project, today: Optional[date] = None) -> Optional[int]:
    if project.due_date is None:
        return None
    return (project.due_date - (today or date.today())).days


def project_priority(project: Project, today: Optional[date] = None) -> Literal["high", "medium", "low"]:
    """High when overdue or due within a week, medium within two weeks."""
    days = days_until_due(project, today)
    if days is not None and days <= 7:
        return "high"
    if days is not None and days <= 14:
        return "medium"
    return "low"


def revenue_stats(entries: Sequence[RevenueEntry],
                  today: Optional[date] = None,
                  monthly_target: float = 75000.0) -> RevenueStats:
    today = today or date.today()
    year, month = today.year, today.month
    last_month, last_month_year = (12, year - 1) if month == 1 else (month - 1, year)

    current_month = _total(e for e in entries if e.month == month and e.year == year)
    previous_month = _total(e for e in entries if e.month == last_month and e.year == last_month_year)
    year_to_date = _total(e for e in entries if e.year == year)
    last_year = _total(e for e in entries if e.year == year - 1)

    by_month: Dict[int, float] = defaultdict(float)
    for entry in entries:
        if entry.year == year:
            by_month[entry.month] += entry.amount
    average_monthly = sum(by_month.values()) / len(by_month) if by_month else 0.0

    return RevenueStats(
        current_month=current_month,
        last_month=previous_month,
        year_to_date=year_to_date,
        last_year=last_year,
        monthly_growth=_growth(current_month, previous_month),
        yearly_growth=_growth(year_to_date, last_year),
        average_monthly=average_monthly,
        projected_yearly=average_monthly * 12,
        target_progress=current_month / monthly_target * 100 if monthly_target > 0 else 0.0,
    )


def revenue_by_type(entries: Sequence[RevenueEntry], year: int) -> RevenueByType:
    totals = {"returns": 0.0, "project": 0.0, "on_call": 0.0}
    for entry in entries:
        if entry.year == year:
            totals[entry.type] += entry.amount
    return RevenueByType(**totals)


def monthly_trends(entries: Sequence[RevenueEntry], year: int, months: int = 12) -> List[MonthlyRevenue]:
    """Per-month totals for ``year`` with growth against the same month a year earlier."""
    trends = []
    for month in range(1, months + 1):
        current = [e for e in entries if e.year == year and e.month == month]
        previous_total = _total(e for e in entries if e.year == year - 1 and e.month == month)
        total = _total(current)
        trends.append(MonthlyRevenue(
            month=month,
            year=year,
            month_name=calendar.month_abbr[month],
            total=total,
            returns=_total(e for e in current if e.type == "returns"),
            project=_total(e for e in current if e.type == "project"),
            on_call=_total(e for e in current if e.type == "on_call"),
            growth=_growth(total, previous_total),
        ))
    return trends
