"""
Actor dependencies.
Authentication happens upstream; the caller's user id arrives in the
X-Actor-ID header and is resolved against the actor directory here.
"""
import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from leaveflow.core.config import settings
from leaveflow.core.exceptions import AccessDeniedError, AuthenticationError
from leaveflow.database import get_db
from leaveflow.repositories.actor_repository import ActorRepository
from leaveflow.schemas.approval import ActorContext
from leaveflow.services.permissions import is_admin

logger = logging.getLogger(__name__)


def get_actor_id(actor_id: Optional[str] = Header(None, alias=settings.actor_id_header)) -> int:
    if actor_id is None or not actor_id.strip().isdigit():
        logger.warning("Missing or malformed actor header")
        raise AuthenticationError(f"{settings.actor_id_header} header must carry a numeric user id")
    return int(actor_id)


def get_current_actor(actor_id: int = Depends(get_actor_id), db: Session = Depends(get_db)) -> ActorContext:
    return ActorRepository(db).get_actor(actor_id)


def require_admin(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
    """Registry changes are limited to admins and super admins."""
    if not is_admin(actor):
        raise AccessDeniedError("Only administrators can change approval configuration")
    return actor
