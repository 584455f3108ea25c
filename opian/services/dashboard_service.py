"""
Dashboard service.
Role-scoped counters and revenue for the dashboard header cards.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func

from opian.database import utcnow
from opian.decorators.permissions import scope_to_owner
from opian.models import Client, Quote, Meeting, QuoteStatus, MeetingStatus
from opian.services.cache_service import get_cache, user_scope

logger = logging.getLogger(__name__)

CACHE_MODULE = 'dashboard'
CACHE_KEY = 'stats'


def get_month_start(now: datetime) -> datetime:
    """First instant of the month containing now."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def get_dashboard_stats(session, user, now: Optional[datetime] = None) -> dict:
    """
    Aggregate dashboard stats for a user.

    Admins see totals over every row, consultants only over their own.

    Returns:
        dict with keys:
            - totalClients: int
            - activeQuotes: int (quotes in 'sent')
            - upcomingMeetings: int ('scheduled' meetings not yet started)
            - monthlyRevenue: float (total of quotes accepted this month,
              by last update time)
    """
    if now is None:
        now = utcnow()
    month_start = get_month_start(now)

    total_clients = scope_to_owner(
        session.query(func.count(Client.id)), Client.created_by, user
    ).scalar() or 0

    active_quotes = scope_to_owner(
        session.query(func.count(Quote.id)), Quote.created_by, user
    ).filter(
        Quote.status == QuoteStatus.SENT.value
    ).scalar() or 0

    upcoming_meetings = scope_to_owner(
        session.query(func.count(Meeting.id)), Meeting.created_by, user
    ).filter(
        Meeting.scheduled_at >= now,
        Meeting.status == MeetingStatus.SCHEDULED.value
    ).scalar() or 0

    revenue = scope_to_owner(
        session.query(func.coalesce(func.sum(Quote.total), 0)), Quote.created_by, user
    ).filter(
        Quote.status == QuoteStatus.ACCEPTED.value,
        Quote.updated_at >= month_start
    ).scalar()

    return {
        'totalClients': int(total_clients),
        'activeQuotes': int(active_quotes),
        'upcomingMeetings': int(upcoming_meetings),
        'monthlyRevenue': float(Decimal(str(revenue or 0))),
    }


def get_cached_dashboard_stats(session, user, ttl: Optional[int] = None) -> dict:
    """Dashboard stats through the Redis cache (cache-aside)."""
    return get_cache().memoize(
        user_scope(user),
        CACHE_MODULE,
        CACHE_KEY,
        lambda: get_dashboard_stats(session, user),
        ttl,
    )


def invalidate_dashboard(owner_id: str) -> None:
    """Forget cached stats affected by a write to a row owned by owner_id."""
    get_cache().invalidate_for_owner(owner_id, CACHE_MODULE, CACHE_KEY)


def empty_stats() -> dict:
    return {'totalClients': 0, 'activeQuotes': 0, 'upcomingMeetings': 0, 'monthlyRevenue': 0}
