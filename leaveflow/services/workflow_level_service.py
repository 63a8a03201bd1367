"""
Workflow level catalog: the default approver for each position in a chain.
Workflow authoring seeds its steps from here; request-time resolution never
reads it.
"""
from typing import List

from leaveflow.core.exceptions import NotFoundError, ValidationError
from leaveflow.models.approver_type import ApproverType
from leaveflow.models.workflow_level import WorkflowLevel
from leaveflow.schemas.workflow import (
    ApprovalStepSchema,
    WorkflowLevelCreate,
    WorkflowLevelUpdate,
)
from leaveflow.services.audit import AuditService
from leaveflow.services.base import BaseService

DEFAULT_WORKFLOW_LEVELS = [
    {
        "level": 1,
        "name": "Team Lead Approval",
        "description": "First-line approval by the requester's team lead",
        "approver_type": "team_lead",
        "fallback_roles": ["manager"],
    },
    {
        "level": 2,
        "name": "Manager Approval",
        "description": "Approval by the requester's manager",
        "approver_type": "manager",
        "fallback_roles": ["hr"],
    },
    {
        "level": 3,
        "name": "HR Approval",
        "description": "Approval by human resources",
        "approver_type": "hr",
        "fallback_roles": ["super_admin"],
    },
    {
        "level": 4,
        "name": "Super Admin Approval",
        "description": "Final approval by a super administrator",
        "approver_type": "super_admin",
        "fallback_roles": ["super_admin"],
    },
]


class WorkflowLevelService(BaseService):
    def list_levels(self) -> List[WorkflowLevel]:
        return self.db.query(WorkflowLevel).order_by(WorkflowLevel.level).all()

    def levels_for_workflow_authoring(self) -> List[WorkflowLevel]:
        """Active catalog entries in chain order."""
        return (
            self.db.query(WorkflowLevel)
            .filter(WorkflowLevel.is_active.is_(True))
            .order_by(WorkflowLevel.level)
            .all()
        )

    def get_level(self, level_id: int) -> WorkflowLevel:
        level = self.db.get(WorkflowLevel, level_id)
        if level is None:
            raise NotFoundError(f"Workflow level {level_id} not found")
        return level

    def _check_approver_type(self, code: str) -> None:
        if not self.db.query(ApproverType).filter(ApproverType.code == code).first():
            raise ValidationError(f"Unknown approver type '{code}'", details={"approver_type": code})

    def _check_level_free(self, level: int, exclude_id: int = None) -> None:
        query = self.db.query(WorkflowLevel).filter(WorkflowLevel.level == level)
        if exclude_id is not None:
            query = query.filter(WorkflowLevel.id != exclude_id)
        if query.first():
            raise ValidationError(f"Workflow level {level} already exists", details={"level": level})

    def create_level(self, data: WorkflowLevelCreate) -> WorkflowLevel:
        self._check_approver_type(data.approver_type)
        self._check_level_free(data.level)
        level = WorkflowLevel(**data.model_dump())
        self.db.add(level)
        self.db.flush()
        AuditService(self.db).log_action(
            action="create_workflow_level",
            entity_type="workflow_level",
            entity_id=level.id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details=data.model_dump(),
        )
        self.commit()
        self.db.refresh(level)
        return level

    def update_level(self, level_id: int, data: WorkflowLevelUpdate) -> WorkflowLevel:
        level = self.get_level(level_id)
        changes = data.model_dump(exclude_unset=True)
        if "approver_type" in changes:
            self._check_approver_type(changes["approver_type"])
        if "level" in changes:
            self._check_level_free(changes["level"], exclude_id=level_id)
        for field, value in changes.items():
            setattr(level, field, value)
        AuditService(self.db).log_action(
            action="update_workflow_level",
            entity_type="workflow_level",
            entity_id=level.id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details=changes,
        )
        self.commit()
        self.db.refresh(level)
        return level

    def delete_level(self, level_id: int) -> None:
        level = self.get_level(level_id)
        self.db.delete(level)
        AuditService(self.db).log_action(
            action="delete_workflow_level",
            entity_type="workflow_level",
            entity_id=level_id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details={"level": level.level},
        )
        self.commit()

    def reset_to_defaults(self) -> List[WorkflowLevel]:
        """Replace the whole catalog with the built-in seed set."""
        self.db.query(WorkflowLevel).delete(synchronize_session="fetch")
        levels = [WorkflowLevel(**seed, is_active=True) for seed in DEFAULT_WORKFLOW_LEVELS]
        self.db.add_all(levels)
        AuditService(self.db).log_action(
            action="reset_workflow_levels",
            entity_type="workflow_level",
            entity_id=None,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details={"levels": [seed["level"] for seed in DEFAULT_WORKFLOW_LEVELS]},
        )
        self.commit()
        self.log_info("Workflow level catalog reset to defaults")
        return self.list_levels()

    def initialize_defaults(self) -> None:
        if self.db.query(WorkflowLevel).count() == 0:
            self.reset_to_defaults()

    def default_steps(self, count: int) -> List[ApprovalStepSchema]:
        """
        Seed steps 1..count from the catalog. Positions without an active
        catalog entry fall back to a team-lead step.
        """
        by_level = {lvl.level: lvl for lvl in self.levels_for_workflow_authoring()}
        steps = []
        for position in range(1, count + 1):
            entry = by_level.get(position)
            approver_type = entry.approver_type if entry else "team_lead"
            steps.append(ApprovalStepSchema(
                level=position,
                approver_type=approver_type,
                roles=[],
                fallback_roles=list(entry.fallback_roles) if entry else [],
                department_specific=approver_type in ("team_lead", "manager", "department_head"),
                required=True,
            ))
        return steps
