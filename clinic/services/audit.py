"""Persistent audit trail for security relevant actions."""
from typing import Any, Dict, Optional

import structlog
from django.contrib.auth import get_user_model

from clinic.logging_config import get_logger
from clinic.models import AuditEvent

User = get_user_model()
logger = get_logger(__name__)


def log_action(*, user, action: str, object_type: Optional[str] = None, object_id: Optional[int] = None,
               detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    """Store one audit event.

    The request id bound by the request middleware is copied into
    ``detail`` so an event can be joined with the access log.  Anonymous
    actors (failed logins) are stored without a user.
    """
    detail = dict(detail or {})
    request_id = structlog.contextvars.get_contextvars().get('request_id')
    if request_id:
        detail.setdefault('requestId', request_id)
    actor = user if isinstance(user, User) and user.pk else None
    event = AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=object_id,
        detail=detail,
    )
    logger.info('audit', action=action, user_id=actor.pk if actor else None,
                object_type=object_type, object_id=object_id)
    return event
