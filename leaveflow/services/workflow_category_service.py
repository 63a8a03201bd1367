from typing import List, Optional

from leaveflow.core.exceptions import NotFoundError, ValidationError
from leaveflow.models.workflow_category import WorkflowCategory
from leaveflow.schemas.workflow import WorkflowCategoryCreate, WorkflowCategoryUpdate
from leaveflow.services.audit import AuditService
from leaveflow.services.base import BaseService
from leaveflow.services.workflow_resolver import workflow_cache


class WorkflowCategoryService(BaseService):
    def list_categories(self, is_active: Optional[bool] = None) -> List[WorkflowCategory]:
        query = self.db.query(WorkflowCategory)
        if is_active is not None:
            query = query.filter(WorkflowCategory.is_active == is_active)
        return query.order_by(WorkflowCategory.min_days, WorkflowCategory.id).all()

    def get_category(self, category_id: int) -> WorkflowCategory:
        category = self.db.get(WorkflowCategory, category_id)
        if category is None:
            raise NotFoundError(f"Workflow category {category_id} not found")
        return category

    def create_category(self, data: WorkflowCategoryCreate) -> WorkflowCategory:
        category = WorkflowCategory(**data.model_dump())
        self.db.add(category)
        self.db.flush()
        AuditService(self.db).log_action(
            action="create_workflow_category",
            entity_type="workflow_category",
            entity_id=category.id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details=data.model_dump(),
        )
        self.commit()
        self.db.refresh(category)
        return category

    def update_category(self, category_id: int, data: WorkflowCategoryUpdate) -> WorkflowCategory:
        """
        Shrinking max_steps below an attached workflow's step count is refused.
        A range change is carried over to every attached workflow.
        """
        category = self.get_category(category_id)
        changes = data.model_dump(exclude_unset=True)

        min_days = changes.get("min_days", category.min_days)
        max_days = changes.get("max_days", category.max_days)
        if min_days > max_days:
            raise ValidationError("minDays must not exceed maxDays", details={"min_days": min_days, "max_days": max_days})

        max_steps = changes.get("max_steps", category.max_steps)
        too_long = [wf for wf in category.workflows if len(wf.steps) > max_steps]
        if too_long:
            raise ValidationError(
                f"Category '{category.name}' cannot allow only {max_steps} steps: "
                f"{len(too_long)} attached workflow(s) have more; trim their steps first",
                details={
                    "max_steps": max_steps,
                    "workflows": [{"id": wf.id, "name": wf.name, "steps": len(wf.steps)} for wf in too_long],
                },
            )

        before = {"min_days": category.min_days, "max_days": category.max_days, "max_steps": category.max_steps}
        for field, value in changes.items():
            setattr(category, field, value)

        if "min_days" in changes or "max_days" in changes:
            for workflow in category.workflows:
                workflow.min_days = category.min_days
                workflow.max_days = category.max_days

        AuditService(self.db).log_action(
            action="update_workflow_category",
            entity_type="workflow_category",
            entity_id=category.id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details=changes,
            before_state=before,
        )
        self.commit()
        workflow_cache.invalidate()
        self.db.refresh(category)
        return category

    def toggle_status(self, category_id: int) -> WorkflowCategory:
        category = self.get_category(category_id)
        return self.update_category(category_id, WorkflowCategoryUpdate(is_active=not category.is_active))

    def delete_category(self, category_id: int) -> None:
        category = self.get_category(category_id)
        if category.workflows:
            raise ValidationError(
                f"Category '{category.name}' still has {len(category.workflows)} workflow(s) attached",
                details={"workflow_ids": [wf.id for wf in category.workflows]},
            )
        self.db.delete(category)
        AuditService(self.db).log_action(
            action="delete_workflow_category",
            entity_type="workflow_category",
            entity_id=category_id,
            user_id=self.actor_id,
            user_role=self.actor_role,
            details={"name": category.name},
        )
        self.commit()
