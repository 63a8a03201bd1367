"""
Approval workflow authoring.

Definitions are validated here and rejected outright when malformed; nothing
is trimmed or renumbered on the caller's behalf.
"""
from typing import List, Optional, Sequence, Set

from leaveflow.core.config import settings
from leaveflow.core.exceptions import NotFoundError, ValidationError
from leaveflow.models.approval_workflow import ApprovalWorkflow, ApprovalStep
from leaveflow.models.user import User
from leaveflow.models.workflow_category import WorkflowCategory
from leaveflow.repositories.workflow_repository import WorkflowRepository
from leaveflow.schemas.workflow import (
    SPECIFIC_USER,
    ApprovalStepSchema,
    ApprovalWorkflowCreate,
    ApprovalWorkflowResponse,
    ApprovalWorkflowUpdate,
)
from leaveflow.services.approver_type_service import ApproverTypeService
from leaveflow.services.audit import AuditService
from leaveflow.services.base import BaseService
from leaveflow.services.workflow_level_service import WorkflowLevelService
from leaveflow.services.workflow_resolver import WorkflowResolver, workflow_cache

DEFAULT_WORKFLOWS = [
    {"name": "Short Leave", "description": "Up to two days", "min_days": 0.5, "max_days": 2, "steps": 1},
    {"name": "Medium Leave", "description": "Two and a half to five days", "min_days": 2.5, "max_days": 5, "steps": 2},
    {"name": "Long Leave", "description": "More than five days", "min_days": 5.5, "max_days": 365, "steps": 3},
]


def validate_workflow_definition(
    min_days: float,
    max_days: float,
    steps: Sequence[ApprovalStepSchema],
    category: Optional[WorkflowCategory],
    known_codes: Set[str],
) -> None:
    if min_days > max_days:
        raise ValidationError("minDays must not exceed maxDays", details={"min_days": min_days, "max_days": max_days})

    levels = [step.level for step in steps]
    if len(set(levels)) != len(levels):
        raise ValidationError("Approval levels must not repeat", details={"levels": levels})
    if sorted(levels) != list(range(1, len(levels) + 1)):
        raise ValidationError("Approval levels must be numbered 1..N without gaps", details={"levels": levels})

    if category is not None:
        if (min_days, max_days) != (category.min_days, category.max_days):
            raise ValidationError(
                f"Workflow range must match category '{category.name}' ({category.min_days}-{category.max_days} days)",
                details={"category_id": category.id},
            )
        if category.max_steps == 0 and steps:
            raise ValidationError(
                f"Category '{category.name}' does not allow any approval steps",
                details={"category_id": category.id, "max_steps": 0},
            )
        if len(steps) > category.max_steps:
            raise ValidationError(
                f"Category '{category.name}' allows a maximum of {category.max_steps} approval steps; got {len(steps)}",
                details={"category_id": category.id, "max_steps": category.max_steps, "steps": len(steps)},
            )
    elif not steps:
        raise ValidationError("A workflow outside an auto-approve category needs at least one approval step")

    for step in steps:
        if step.approver_type != SPECIFIC_USER and step.approver_type not in known_codes:
            raise ValidationError(
                f"Unknown or inactive approver type '{step.approver_type}' at level {step.level}",
                details={"level": step.level, "approver_type": step.approver_type},
            )


class ApprovalWorkflowService(BaseService):
    def list_workflows(self, is_active: Optional[bool] = None, category_id: Optional[int] = None) -> List[ApprovalWorkflow]:
        query = self.db.query(ApprovalWorkflow)
        if is_active is not None:
            query = query.filter(ApprovalWorkflow.is_active == is_active)
        if category_id is not None:
            query = query.filter(ApprovalWorkflow.category_id == category_id)
        return query.order_by(ApprovalWorkflow.min_days, ApprovalWorkflow.id).all()

    def get_workflow(self, workflow_id: int) -> ApprovalWorkflow:
        workflow = self.db.get(ApprovalWorkflow, workflow_id)
        if workflow is None:
            raise NotFoundError(f"Approval workflow {workflow_id} not found")
        return workflow

    def _category(self, category_id: Optional[int]) -> Optional[WorkflowCategory]:
        if category_id is None:
            return None
        category = self.db.get(WorkflowCategory, category_id)
        if category is None:
            raise ValidationError(f"Workflow category {category_id} does not exist", details={"category_id": category_id})
        if not category.is_active:
            raise ValidationError(f"Workflow category '{category.name}' is inactive", details={"category_id": category_id})
        return category

    def _validate(self, min_days, max_days, steps, category, kept_codes: Set[str] = frozenset()) -> None:
        # Steps left untouched may keep referencing since-deactivated approver types
        validate_workflow_definition(
            min_days, max_days, steps, category,
            ApproverTypeService(self.db).active_codes() | set(kept_codes),
        )
        for step in steps:
            if step.is_specific_user:
                user_id = step.roles[0]
                if not user_id.isdigit() or self.db.get(User, int(user_id)) is None:
                    raise ValidationError(
                        f"Level {step.level} names unknown user '{user_id}'",
                        details={"level": step.level, "user": user_id},
                    )

    @staticmethod
    def _step_rows(steps: Sequence[ApprovalStepSchema]) -> List[ApprovalStep]:
        return [ApprovalStep(**step.model_dump()) for step in sorted(steps, key=lambda s: s.level)]

    def create_workflow(self, data: ApprovalWorkflowCreate) -> ApprovalWorkflow:
        category = self._category(data.category_id)
        self._validate(data.min_days, data.max_days, data.approval_levels, category)

        workflow = ApprovalWorkflow(
            name=data.name,
            description=data.description,
            category_id=data.category_id,
            min_days=data.min_days,
            max_days=data.max_days,
            is_active=data.is_active,
            steps=self._step_rows(data.approval_levels),
        )
        self.db.add(workflow)
        self.db.flush()
        AuditService(self.db).log_action(
            action="create_approval_workflow",
            entity_type="approval_workflow",
            entity_id=workflow.id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details=data.model_dump(),
        )
        self.commit()
        workflow_cache.invalidate()
        self.db.refresh(workflow)
        self.log_info(f"Created approval workflow '{workflow.name}' with {len(workflow.steps)} step(s)")
        return workflow

    def update_workflow(self, workflow_id: int, data: ApprovalWorkflowUpdate) -> ApprovalWorkflow:
        """In-flight requests keep their own copy of the steps; editing here never reaches them."""
        workflow = self.get_workflow(workflow_id)
        changes = data.model_dump(exclude_unset=True)

        category_id = changes.get("category_id", workflow.category_id)
        category = self._category(category_id) if category_id != workflow.category_id else workflow.category
        steps = data.approval_levels if data.approval_levels is not None else [
            ApprovalStepSchema.model_validate(s) for s in workflow.steps
        ]
        min_days = changes.get("min_days", workflow.min_days)
        max_days = changes.get("max_days", workflow.max_days)
        kept_codes = {s.approver_type for s in workflow.steps} if data.approval_levels is None else set()
        self._validate(min_days, max_days, steps, category, kept_codes)

        before = ApprovalWorkflowResponse.model_validate(workflow).model_dump(mode="json")
        for field in ("name", "description", "category_id", "min_days", "max_days", "is_active"):
            if field in changes:
                setattr(workflow, field, changes[field])

        if data.approval_levels is not None:
            # Flush the removals first so (workflow_id, level) stays unique
            workflow.steps.clear()
            self.db.flush()
            workflow.steps.extend(self._step_rows(data.approval_levels))

        AuditService(self.db).log_action(
            action="update_approval_workflow",
            entity_type="approval_workflow",
            entity_id=workflow.id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details=changes,
            before_state=before,
        )
        self.commit()
        workflow_cache.invalidate()
        self.db.refresh(workflow)
        return workflow

    def toggle_status(self, workflow_id: int) -> ApprovalWorkflow:
        workflow = self.get_workflow(workflow_id)
        return self.update_workflow(workflow_id, ApprovalWorkflowUpdate(is_active=not workflow.is_active))

    def delete_workflow(self, workflow_id: int) -> None:
        workflow = self.get_workflow(workflow_id)
        self.db.delete(workflow)
        AuditService(self.db).log_action(
            action="delete_approval_workflow",
            entity_type="approval_workflow",
            entity_id=workflow_id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details={"name": workflow.name},
        )
        self.commit()
        workflow_cache.invalidate()

    def workflow_for_duration(self, duration_days: float) -> ApprovalWorkflowResponse:
        resolver = WorkflowResolver(
            WorkflowRepository(self.db).list_active_approval_workflows,
            workflow_cache if settings.enable_caching else None,
        )
        return resolver.resolve(duration_days)

    def initialize_default_workflows(self) -> List[ApprovalWorkflow]:
        """Seed Short/Medium/Long workflows from the level catalog when none exist."""
        if self.db.query(ApprovalWorkflow).count() > 0:
            return []
        ApproverTypeService(self.db, self.actor).initialize_defaults()
        levels = WorkflowLevelService(self.db, self.actor)
        levels.initialize_defaults()

        created = []
        for seed in DEFAULT_WORKFLOWS:
            created.append(self.create_workflow(ApprovalWorkflowCreate(
                name=seed["name"],
                description=seed["description"],
                min_days=seed["min_days"],
                max_days=seed["max_days"],
                approval_levels=levels.default_steps(seed["steps"]),
                is_active=True,
            )))
        return created
