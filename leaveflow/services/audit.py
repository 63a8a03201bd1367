from typing import Optional

from leaveflow.models.audit_log import AuditLog
from leaveflow.services.base import BaseService


def _sanitize(obj):
    """Make nested pydantic models / enums JSON-storable."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if hasattr(obj, "value") and not isinstance(obj, (str, int, float, bool)):
        return obj.value
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return obj


class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        user_id: Optional[int],
        user_role: Optional[str],
        details: dict,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None
    ):
        """
        Create a centralized audit log entry.
        Strictly append-only. Not committed here: the entry rides on the
        caller's transaction so it disappears with a rolled-back action.
        """
        try:
            db_log = AuditLog(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user_id,
                user_role=_sanitize(user_role),
                details=_sanitize(details),
                before_state=_sanitize(before_state),
                after_state=_sanitize(after_state)
            )
            self.db.add(db_log)
            return db_log
        except Exception as e:
            self._logger.error(f"FAILED TO AUDIT LOG: {e}", exc_info=True)
            return None  # Never break the main app flow because of a logging failure
