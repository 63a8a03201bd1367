import logging

from sqlalchemy.orm import Session

from leaveflow.core.exceptions import AccessDeniedError, NotFoundError
from leaveflow.models.user import User
from leaveflow.schemas.approval import ActorContext

logger = logging.getLogger(__name__)


class ActorRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_actor(self, actor_id: int) -> ActorContext:
        user = self.session.get(User, actor_id)
        if user is None:
            raise NotFoundError(f"User {actor_id} not found", details={"actor_id": actor_id})
        if not user.is_active:
            logger.warning(f"Inactive user {actor_id} attempted an approval action")
            raise AccessDeniedError("User is inactive")
        return ActorContext(
            id=user.id,
            name=user.display_name,
            role=user.role,
            custom_permissions=list(user.custom_permissions or []),
            department_id=user.department_id,
        )
