# common/audit.py
"""
Request-scoped helpers around ActionLog.
"""
import logging

from django.db import DatabaseError

from .models import ActionLog

logger = logging.getLogger(__name__)


def client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "") or ""


def log_action(request, action_type, entity_type, entity_id=None, description="", changes=None):
    """Record what the acting user did. Anonymous requests are not logged."""
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    try:
        return ActionLog.record(
            user=user,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            changes=changes,
            ip_address=client_ip(request),
            user_agent=request.META.get("HTTP_USER_AGENT", "") or "",
        )
    except DatabaseError:
        # the logged change is already committed at this point
        logger.warning("Failed to log %s for %s #%s", action_type, entity_type, entity_id, exc_info=True)
        return None
