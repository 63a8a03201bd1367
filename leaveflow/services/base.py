import logging
from typing import Optional

from sqlalchemy.orm import Session

from leaveflow.models.user import UserRole
from leaveflow.schemas.approval import ActorContext


class BaseService:
    """Holds the session, the acting user when there is one, and a class-named logger."""

    def __init__(self, db: Session, actor: Optional[ActorContext] = None):
        self.db = db
        self.actor = actor
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @property
    def actor_id(self) -> Optional[int]:
        return self.actor.id if self.actor else None

    @property
    def actor_role(self) -> Optional[UserRole]:
        return self.actor.role if self.actor else None

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

    def commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
