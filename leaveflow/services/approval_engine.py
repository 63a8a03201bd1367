"""
Approval engine: the operations the rest of the application calls.

Each operation is one unit of work: read the request snapshot, compute the
transition, check permissions, then save the metadata with a version check.
Any failure rolls the session back so the request is left exactly as it was.
"""
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.orm import Session

from leaveflow.core.config import NoWorkflowPolicy, settings
from leaveflow.core.exceptions import AccessDeniedError
from leaveflow.core.security import sanitize_input
from leaveflow.models.leave_request import LeaveStatus
from leaveflow.repositories.actor_repository import ActorRepository
from leaveflow.repositories.balance_repository import LeaveBalanceRepository
from leaveflow.repositories.leave_request_repository import LeaveRequestRepository
from leaveflow.repositories.workflow_repository import WorkflowRepository
from leaveflow.schemas.approval import (
    ActorContext,
    ApprovalAction,
    ApprovalMetadata,
    LeaveRequestSnapshot,
)
from leaveflow.schemas.workflow import ApprovalWorkflowResponse
from leaveflow.services import approval_state_machine as machine
from leaveflow.services.audit import AuditService
from leaveflow.services.base import BaseService
from leaveflow.services.permissions import PermissionEvaluator, evaluator_for
from leaveflow.services.ports import ActorDirectory, BalanceLedger, LeaveRequestStore, WorkflowCatalog
from leaveflow.services.workflow_resolver import WorkflowResolver, workflow_cache

_FROM_SETTINGS = object()


class ApprovalEngine(BaseService):
    def __init__(
        self,
        db: Session,
        evaluator: Optional[PermissionEvaluator] = None,
        no_workflow_policy=_FROM_SETTINGS,
        requests: Optional[LeaveRequestStore] = None,
        catalog: Optional[WorkflowCatalog] = None,
        actors: Optional[ActorDirectory] = None,
        balances: Optional[BalanceLedger] = None,
    ):
        super().__init__(db)
        self.evaluator = evaluator or evaluator_for()
        self.no_workflow_policy: Optional[NoWorkflowPolicy] = (
            settings.no_workflow_policy if no_workflow_policy is _FROM_SETTINGS else no_workflow_policy
        )
        self.requests = requests or LeaveRequestRepository(db)
        self.catalog = catalog or WorkflowRepository(db)
        self.actors = actors or ActorRepository(db)
        self.balances = balances or LeaveBalanceRepository(db)
        self.resolver = WorkflowResolver(
            self.catalog.list_active_approval_workflows,
            workflow_cache if settings.enable_caching else None,
        )

    @contextmanager
    def _unit_of_work(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _record(self, action: str, request: LeaveRequestSnapshot, actor: Optional[ActorContext],
                transition: machine.Transition, comments: Optional[str] = None):
        AuditService(self.db).log_action(
            action=action,
            entity_type="leave_request",
            entity_id=request.id,
            user_id=actor.id if actor else None,
            user_role=actor.role if actor else None,
            details={"comments": comments, "level": transition.metadata.current_approval_level},
            before_state={"status": request.status, "metadata": request.metadata},
            after_state={"status": transition.status, "metadata": transition.metadata},
        )

    def _save(self, request: LeaveRequestSnapshot, transition: machine.Transition) -> None:
        self.requests.save_metadata(request.id, transition.status, transition.metadata, request.version)

    # --- Resolution ---

    def resolve_workflow(self, duration_days: float) -> ApprovalWorkflowResponse:
        return self.resolver.resolve(duration_days)

    def _resolve_for_submit(self, duration_days: float) -> Optional[ApprovalWorkflowResponse]:
        """Resolve, then confirm against the store that the pick is still active."""
        workflow = self.resolver.find(duration_days)
        if workflow is None:
            return None
        current = self.catalog.get_approval_workflow(workflow.id)
        if current is not None and current.is_active:
            return current
        self.log_warning(f"Cached workflow {workflow.id} is no longer active; resolving again")
        workflow_cache.invalidate()
        return WorkflowResolver(self.catalog.list_active_approval_workflows).find(duration_days)

    # --- Approval flow ---

    def submit_for_approval(self, request_id: int) -> ApprovalMetadata:
        with self._unit_of_work():
            request = self.requests.get_leave_request(request_id)
            workflow = self._resolve_for_submit(request.days_count)
            transition = machine.submit(request.status, workflow, self.no_workflow_policy)
            self._save(request, transition)
            if transition.status == LeaveStatus.APPROVED:
                self.balances.consume_leave_balance(request.id)
            self._record("submit_leave", request, None, transition)

        self.log_info(
            f"Leave request {request_id} submitted under workflow "
            f"{transition.metadata.workflow_name or 'none'} -> {transition.status.value}",
            required_levels=transition.metadata.required_approval_levels,
        )
        return transition.metadata

    def decide(
        self,
        request_id: int,
        actor_id: int,
        action: ApprovalAction,
        comments: Optional[str] = None,
        level: Optional[int] = None,
    ) -> LeaveStatus:
        comments = sanitize_input(comments)
        with self._unit_of_work():
            actor = self.actors.get_actor(actor_id)
            request = self.requests.get_leave_request(request_id)

            # Ordering and state errors take precedence over permission errors
            if action == ApprovalAction.APPROVE:
                transition = machine.approve(request.status, request.metadata, actor, comments, level)
            else:
                transition = machine.reject(request.status, request.metadata, actor, comments, level)

            if not self.evaluator.can_act(actor, request, action):
                self.log_warning(
                    f"User {actor.id} ({actor.role.value}) may not {action.value} leave request {request.id}",
                    status=request.status.value,
                )
                raise AccessDeniedError(f"You are not allowed to {action.value} this leave request at its current step")

            self._save(request, transition)
            if transition.status == LeaveStatus.APPROVED:
                self.balances.consume_leave_balance(request.id)
            self._record(f"{action.value}_leave", request, actor, transition, comments)

        self.log_info(f"Leave request {request_id}: {request.status.value} -> {transition.status.value} by user {actor_id}")
        return transition.status

    def cancel(self, request_id: int, actor_id: int) -> LeaveStatus:
        with self._unit_of_work():
            actor = self.actors.get_actor(actor_id)
            request = self.requests.get_leave_request(request_id)
            if actor.id != request.employee_id:
                raise AccessDeniedError("Only the requester can cancel a leave request")
            transition = machine.cancel(request.status, request.metadata)
            self._save(request, transition)
            self._record("cancel_leave", request, actor, transition)

        self.log_info(f"Leave request {request_id} cancelled by its requester")
        return transition.status

    # --- Deletion flow ---

    def request_deletion(self, request_id: int, actor_id: Optional[int] = None) -> LeaveStatus:
        with self._unit_of_work():
            actor = self.actors.get_actor(actor_id) if actor_id is not None else None
            request = self.requests.get_leave_request(request_id)
            if actor is not None and actor.id != request.employee_id:
                raise AccessDeniedError("Only the requester can ask for an approved leave to be deleted")
            transition = machine.request_deletion(request.status, request.metadata)
            self._save(request, transition)
            self._record("request_leave_deletion", request, actor, transition)

        self.log_info(f"Deletion requested for leave request {request_id}")
        return transition.status

    def decide_deletion(
        self,
        request_id: int,
        actor_id: int,
        action: ApprovalAction,
        comments: Optional[str] = None,
    ) -> LeaveStatus:
        comments = sanitize_input(comments)
        with self._unit_of_work():
            actor = self.actors.get_actor(actor_id)
            request = self.requests.get_leave_request(request_id)

            if action == ApprovalAction.APPROVE:
                transition = machine.approve_deletion(request.status, request.metadata, actor, comments)
            else:
                transition = machine.reject_deletion(request.status, request.metadata)

            if not self.evaluator.can_act_on_deletion(actor, request, action):
                self.log_warning(f"User {actor.id} ({actor.role.value}) may not decide deletion of leave request {request.id}")
                raise AccessDeniedError(f"You are not allowed to {action.value} the deletion of this leave request")

            self._save(request, transition)
            if transition.status == LeaveStatus.DELETED:
                self.balances.restore_leave_balance(request.id)
            self._record(f"{action.value}_leave_deletion", request, actor, transition, comments)

        self.log_info(f"Deletion of leave request {request_id} {action.value}d by user {actor_id}")
        return transition.status

    # --- Read-only preview ---

    def can_act(self, actor_id: int, request_id: int, action: ApprovalAction) -> bool:
        actor = self.actors.get_actor(actor_id)
        request = self.requests.get_leave_request(request_id)
        if request.status == LeaveStatus.PENDING_DELETION:
            return self.evaluator.can_act_on_deletion(actor, request, action)
        return self.evaluator.can_act(actor, request, action)
