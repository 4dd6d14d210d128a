"""Collect and analyze daily focus metrics"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

from mintik.models.activity import SessionType
from mintik.models.daily import HOURS_PER_DAY, DailyActivityData, date_key
from mintik.services.daily_store import DailyAggregateStore

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]

class MetricsCollector:
    """Collects and formats activity metrics from the daily records"""

    def __init__(self, daily_store: DailyAggregateStore):
        self.daily_store = daily_store

    def _day(self, day: DateLike) -> Optional[DailyActivityData]:
        return self.daily_store.get(date_key(day))

    def get_daily_metrics(self, day: Optional[DateLike] = None) -> Dict:
        """Get metrics for a specific date"""
        if day is None:
            day = datetime.now()
        record = self._day(day)
        return {
            "summary": self._get_daily_summary(record, date_key(day)),
            "hourly_patterns": self._get_hourly_patterns(record),
            "rhythm": self._get_rhythm(record),
            "sessions": self._get_sessions(record)
        }

    def get_rhythm(self, day: Optional[DateLike] = None) -> Dict:
        return self._get_rhythm(self._day(day or datetime.now()))

    def export_timeframe(self, start: DateLike, end: DateLike) -> Dict:
        """Export all metrics for a given timeframe, both ends inclusive"""
        return {
            "timeframe": {
                "start": date_key(start),
                "end": date_key(end)
            },
            "daily_metrics": self._get_daily_metrics_series(start, end),
            "aggregate_metrics": self._get_aggregate_metrics(start, end)
        }

    def _get_daily_summary(self, record: Optional[DailyActivityData], key: str) -> Dict:
        if record is None:
            return {
                "date": key,
                "active_seconds": 0,
                "active_hours": 0.0,
                "rest_seconds": 0,
                "focus_sessions": 0,
                "rest_sessions": 0,
                "peak_hour": None,
                "peak_time": None
            }
        return {
            "date": key,
            "active_seconds": record.total_active_time,
            "active_hours": round(record.total_active_time / 3600, 2),
            "rest_seconds": record.total_rest_time,
            "focus_sessions": record.focus_session_count,
            "rest_sessions": record.rest_session_count,
            "peak_hour": record.peak_hour,
            "peak_time": record.peak_time()
        }

    def _get_hourly_patterns(self, record: Optional[DailyActivityData]) -> Dict[int, Dict]:
        """Active seconds and busiest minute for each hour"""
        patterns = {hour: {"active_seconds": 0, "active_minutes": 0} for hour in range(HOURS_PER_DAY)}
        if record is None:
            return patterns
        for hour in range(HOURS_PER_DAY):
            patterns[hour]["active_seconds"] = record.hourly_activity[hour]
            minutes = record.minute_history.get(hour)
            if minutes:
                patterns[hour]["active_minutes"] = sum(1 for seconds in minutes if seconds > 0)
        return patterns

    def _get_rhythm(self, record: Optional[DailyActivityData]) -> Dict:
        if record is None:
            return {
                "focus_seconds": 0,
                "rest_seconds": 0,
                "focus_rest_ratio": 0.0,
                "average_focus_session": 0.0,
                "longest_focus_session": 0
            }
        focus = [s.duration for s in record.sessions_of(SessionType.FOCUS)]
        return {
            "focus_seconds": record.cumulative_focus_time,
            "rest_seconds": record.cumulative_rest_time,
            "focus_rest_ratio": round(record.focus_rest_ratio, 2),
            "average_focus_session": round(sum(focus) / len(focus), 1) if focus else 0.0,
            "longest_focus_session": max(focus, default=0)
        }

    def _get_sessions(self, record: Optional[DailyActivityData]) -> List[Dict]:
        if record is None:
            return []
        return [session.model_dump(by_alias=True, mode="json") for session in record.sessions]

    def _iter_days(self, start: DateLike, end: DateLike):
        current = start.date() if isinstance(start, datetime) else start
        last = end.date() if isinstance(end, datetime) else end
        while current <= last:
            yield current
            current += timedelta(days=1)

    def _get_daily_metrics_series(self, start: DateLike, end: DateLike) -> List[Dict]:
        """Get metrics for each day in the timeframe"""
        return [
            {"date": date_key(day), **self.get_daily_metrics(day)}
            for day in self._iter_days(start, end)
        ]

    def _get_aggregate_metrics(self, start: DateLike, end: DateLike) -> Dict:
        """Get aggregated metrics for the entire timeframe"""
        records = [r for r in (self._day(d) for d in self._iter_days(start, end)) if r is not None]
        if not records:
            return {
                "days_recorded": 0,
                "active_seconds": 0,
                "rest_seconds": 0,
                "focus_sessions": 0,
                "rest_sessions": 0,
                "average_active_seconds": 0.0,
                "busiest_day": None
            }

        active = sum(r.total_active_time for r in records)
        busiest = max(records, key=lambda r: r.total_active_time)
        return {
            "days_recorded": len(records),
            "active_seconds": active,
            "rest_seconds": sum(r.total_rest_time for r in records),
            "focus_sessions": sum(r.focus_session_count for r in records),
            "rest_sessions": sum(r.rest_session_count for r in records),
            "average_active_seconds": round(active / len(records), 1),
            "busiest_day": busiest.date_string if busiest.total_active_time > 0 else None
        }
