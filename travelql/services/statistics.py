"""Site-wide visit statistics."""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from ..execution import QueryExecutor

logger = logging.getLogger(__name__)

AGGREGATE_CONTEXT = {"table": "visits", "operation": "aggregate"}


class StatsPeriod(enum.Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL_TIME = "all_time"


# Window length and bucket width for each period.
PERIOD_WINDOWS = {
    StatsPeriod.WEEK: (relativedelta(weeks=1), "day"),
    StatsPeriod.MONTH: (relativedelta(months=1), "day"),
    StatsPeriod.YEAR: (relativedelta(years=1), "month"),
    StatsPeriod.ALL_TIME: (None, "year"),
}


@dataclass
class PeriodCount:
    period_start: datetime
    visit_count: int


@dataclass
class GlobalStats:
    period: StatsPeriod
    since: Optional[datetime]
    total_users: int
    total_countries: int
    total_destinations: int
    total_visits: int
    average_rating: Optional[float] = None
    most_visited_destination_id: Optional[int] = None
    most_active_user_id: Optional[int] = None
    visits_by_period: List[PeriodCount] = field(default_factory=list)


def period_window(period: StatsPeriod, now: Optional[datetime] = None) -> Tuple[Optional[datetime], str]:
    """Start of the window ending at ``now`` (None for all time) and its bucket unit."""
    delta, bucket = PERIOD_WINDOWS[period]
    if delta is None:
        return None, bucket
    return (now or datetime.now()) - delta, bucket


class StatisticsService:
    """Aggregates over visible users, places and all visits."""

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    async def _rows(self, sql: str, params=None):
        result = await self.executor.execute(sql, params, AGGREGATE_CONTEXT)
        return result.rows

    async def global_stats(self, period: StatsPeriod = StatsPeriod.ALL_TIME,
                           now: Optional[datetime] = None) -> GlobalStats:
        since, _ = period_window(period, now)
        window, params = ("WHERE visited_at >= $1", [since]) if since else ("", [])

        totals, visits, top_destination, top_user = await self.executor.execute_many([
            ("SELECT\n"
             "  (SELECT COUNT(*) FROM users WHERE hidden = false) AS total_users,\n"
             "  (SELECT COUNT(*) FROM countries WHERE hidden = false) AS total_countries,\n"
             "  (SELECT COUNT(*) FROM destinations WHERE hidden = false) AS total_destinations", []),
            (f"SELECT COUNT(*) AS total_visits, AVG(rating) AS average_rating FROM visits {window}", params),
            (f"SELECT destination_id FROM visits {window}\n"
             "GROUP BY destination_id ORDER BY COUNT(*) DESC, destination_id ASC LIMIT 1", params),
            (f"SELECT user_id FROM visits {window}\n"
             "GROUP BY user_id ORDER BY COUNT(*) DESC, user_id ASC LIMIT 1", params),
        ], AGGREGATE_CONTEXT)
        totals, visits = totals.rows[0], visits.rows[0]

        return GlobalStats(
            period=period,
            since=since,
            total_users=int(totals["total_users"]),
            total_countries=int(totals["total_countries"]),
            total_destinations=int(totals["total_destinations"]),
            total_visits=int(visits["total_visits"]),
            average_rating=float(visits["average_rating"]) if visits["average_rating"] is not None else None,
            most_visited_destination_id=top_destination.rows[0]["destination_id"] if top_destination.rows else None,
            most_active_user_id=top_user.rows[0]["user_id"] if top_user.rows else None,
            visits_by_period=await self.visits_by_period(period, now),
        )

    async def visits_by_period(self, period: StatsPeriod = StatsPeriod.ALL_TIME,
                               now: Optional[datetime] = None) -> List[PeriodCount]:
        """Visit counts per bucket inside the window, oldest bucket first."""
        since, bucket = period_window(period, now)
        window, params = ("WHERE visited_at >= $1", [since]) if since else ("", [])

        rows = await self._rows(
            f"SELECT date_trunc('{bucket}', visited_at) AS period_start, COUNT(*) AS visit_count\n"
            f"FROM visits {window}\n"
            "GROUP BY period_start\n"
            "ORDER BY period_start ASC",
            params
        )
        return [PeriodCount(period_start=row["period_start"], visit_count=int(row["visit_count"])) for row in rows]
