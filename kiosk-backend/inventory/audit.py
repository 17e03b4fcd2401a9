# inventory/audit.py
"""
Action logging for inventory sessions.
"""
from common.audit import log_action

ENTITY_TYPE = "inventory"


def log_inventory_action(request, session, action, description="", changes=None):
    """Log inventory session action (create, complete, cancel, delete)"""
    return log_action(
        request,
        action_type=f"INVENTORY_{action.upper()}",
        entity_type=ENTITY_TYPE,
        entity_id=session.id,
        description=description,
        changes={
            "kiosk_id": session.kiosk_id,
            "status": session.status,
            **(changes or {}),
        },
    )
