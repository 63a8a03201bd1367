from typing import List, Optional, Set

from leaveflow.core.exceptions import NotFoundError, ValidationError
from leaveflow.models.approver_type import ApproverType
from leaveflow.repositories.workflow_repository import WorkflowRepository
from leaveflow.schemas.workflow import ApproverTypeCreate, ApproverTypeUpdate
from leaveflow.services.audit import AuditService
from leaveflow.services.base import BaseService

DEFAULT_APPROVER_TYPES = [
    {"name": "Team Lead", "code": "team_lead", "description": "Direct team lead of the requester"},
    {"name": "Manager", "code": "manager", "description": "Line manager of the requester"},
    {"name": "HR", "code": "hr", "description": "Human resources"},
    {"name": "Department Head", "code": "department_head", "description": "Head of the requester's department"},
    {"name": "Super Admin", "code": "super_admin", "description": "Platform super administrator"},
]


class ApproverTypeService(BaseService):
    def list_approver_types(self, is_active: Optional[bool] = None) -> List[ApproverType]:
        query = self.db.query(ApproverType)
        if is_active is not None:
            query = query.filter(ApproverType.is_active == is_active)
        return query.order_by(ApproverType.name).all()

    def get_approver_type(self, approver_type_id: int) -> ApproverType:
        approver_type = self.db.get(ApproverType, approver_type_id)
        if approver_type is None:
            raise NotFoundError(f"Approver type {approver_type_id} not found")
        return approver_type

    def active_codes(self) -> Set[str]:
        rows = self.db.query(ApproverType.code).filter(ApproverType.is_active.is_(True)).all()
        return {code for (code,) in rows}

    def create_approver_type(self, data: ApproverTypeCreate) -> ApproverType:
        if self.db.query(ApproverType).filter(ApproverType.code == data.code).first():
            raise ValidationError(f"Approver type code '{data.code}' already exists", details={"code": data.code})

        approver_type = ApproverType(**data.model_dump())
        self.db.add(approver_type)
        self.db.flush()
        AuditService(self.db).log_action(
            action="create_approver_type",
            entity_type="approver_type",
            entity_id=approver_type.id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details=data.model_dump(),
        )
        self.commit()
        self.db.refresh(approver_type)
        self.log_info(f"Created approver type {approver_type.code}")
        return approver_type

    def update_approver_type(self, approver_type_id: int, data: ApproverTypeUpdate) -> ApproverType:
        approver_type = self.get_approver_type(approver_type_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(approver_type, field, value)
        AuditService(self.db).log_action(
            action="update_approver_type",
            entity_type="approver_type",
            entity_id=approver_type.id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details=changes,
        )
        self.commit()
        self.db.refresh(approver_type)
        return approver_type

    def toggle_status(self, approver_type_id: int) -> ApproverType:
        return self.update_approver_type(
            approver_type_id,
            ApproverTypeUpdate(is_active=not self.get_approver_type(approver_type_id).is_active),
        )

    def delete_approver_type(self, approver_type_id: int) -> None:
        """Hard delete is only allowed while nothing references the code."""
        approver_type = self.get_approver_type(approver_type_id)
        if WorkflowRepository(self.db).approver_type_in_use(approver_type.code):
            raise ValidationError(
                f"Approver type '{approver_type.code}' is referenced by workflow steps or levels; deactivate it instead",
                details={"code": approver_type.code},
            )
        self.db.delete(approver_type)
        AuditService(self.db).log_action(
            action="delete_approver_type",
            entity_type="approver_type",
            entity_id=approver_type_id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details={"code": approver_type.code},
        )
        self.commit()

    def initialize_defaults(self) -> List[ApproverType]:
        existing = {code for (code,) in self.db.query(ApproverType.code).all()}
        created = []
        for seed in DEFAULT_APPROVER_TYPES:
            if seed["code"] in existing:
                continue
            approver_type = ApproverType(**seed, is_active=True)
            self.db.add(approver_type)
            created.append(approver_type)
        if created:
            self.commit()
            self.log_info(f"Seeded {len(created)} default approver types")
        return created
