# common/api.py
from datetime import datetime, time, timedelta
from typing import Optional

from django.db.models import Count
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import ActionLog
from .permissions import IsAdminRole
from .serializers import ActionLogSerializer

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
DEFAULT_STATS_DAYS = 7
TOP_USERS = 10


def _positive_int(value, default):
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def _to_aware_dt(val: Optional[str], end_of_day: bool) -> Optional[datetime]:
    """Parse ISO datetime or YYYY-MM-DD; make timezone-aware in current TZ."""
    if not val:
        return None
    dt = parse_datetime(val)
    if dt is None:
        d = parse_date(val)
        if not d:
            return None
        naive = datetime.combine(d, time.max if end_of_day else time.min)
        return timezone.make_aware(naive, timezone.get_current_timezone())
    return timezone.make_aware(dt, timezone.get_current_timezone()) if timezone.is_naive(dt) else dt


class ActionLogListView(APIView):
    """
    GET /api/v1/action-logs?action_type=&entity_type=&user_id=&start_date=&end_date=&page=&limit=
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        params = request.query_params
        qs = ActionLog.objects.select_related("user", "user__staff_profile")

        action_type = (params.get("action_type") or "").strip()
        if action_type:
            qs = qs.filter(action_type=action_type)
        entity_type = (params.get("entity_type") or "").strip()
        if entity_type:
            qs = qs.filter(entity_type=entity_type)

        user_id = params.get("user_id")
        if user_id:
            try:
                qs = qs.filter(user_id=int(user_id))
            except ValueError:
                return Response({"error": "Невірний користувач"}, status=400)

        start = _to_aware_dt(params.get("start_date"), end_of_day=False)
        end = _to_aware_dt(params.get("end_date"), end_of_day=True)
        if start:
            qs = qs.filter(created_at__gte=start)
        if end:
            qs = qs.filter(created_at__lte=end)

        page = _positive_int(params.get("page"), 1)
        limit = min(_positive_int(params.get("limit"), DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
        total = qs.count()
        offset = (page - 1) * limit
        rows = qs.order_by("-created_at", "-id")[offset:offset + limit]

        return Response({
            "logs": ActionLogSerializer(rows, many=True).data,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": (total + limit - 1) // limit,
            },
        })


class ActionLogStatsView(APIView):
    """
    GET /api/v1/action-logs/stats?period=<days>
    Counts per action type, per entity type, and the most active users.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        days = _positive_int(request.query_params.get("period"), DEFAULT_STATS_DAYS)
        since = timezone.make_aware(
            datetime.combine(timezone.localdate() - timedelta(days=days), time.min),
            timezone.get_current_timezone(),
        )
        qs = ActionLog.objects.filter(created_at__gte=since)

        action_types = (
            qs.values("action_type").annotate(count=Count("id")).order_by("-count", "action_type")
        )
        entity_types = (
            qs.values("entity_type").annotate(count=Count("id")).order_by("-count", "entity_type")
        )
        users = (
            qs.filter(user__isnull=False)
            .values("user_id", "user__username", "user__staff_profile__full_name")
            .annotate(action_count=Count("id"))
            .order_by("-action_count", "user_id")[:TOP_USERS]
        )

        return Response({
            "action_types": list(action_types),
            "entity_types": list(entity_types),
            "top_users": [
                {
                    "id": row["user_id"],
                    "username": row["user__username"],
                    "full_name": row["user__staff_profile__full_name"] or "",
                    "action_count": row["action_count"],
                }
                for row in users
            ],
            "period_days": days,
        })
