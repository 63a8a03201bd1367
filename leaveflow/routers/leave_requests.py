"""
Leave request endpoints: create-and-submit, decisions, cancellation and the
deletion sub-flow. Every state change goes through the approval engine.
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from leaveflow.core.exceptions import AccessDeniedError
from leaveflow.core.limiter import limiter
from leaveflow.core.security import sanitize_input
from leaveflow.database import get_db
from leaveflow.models.leave_request import LeaveRequest, LeaveStatus
from leaveflow.repositories.leave_request_repository import LeaveRequestRepository
from leaveflow.routers.auth_deps import get_actor_id, get_current_actor
from leaveflow.schemas.approval import (
    ActorContext,
    ApprovalAction,
    CanActResponse,
    DecisionRequest,
    DeletionDecisionRequest,
    LeaveRequestCreate,
    LeaveRequestResponse,
)
from leaveflow.services.approval_engine import ApprovalEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


def _response(db: Session, request_id: int) -> LeaveRequest:
    return LeaveRequestRepository(db).get_or_404(request_id)


@router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_leave_request(
    request: Request,
    data: LeaveRequestCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
):
    """
    Store the request as a draft, then submit it. If submission fails the
    draft stays NOT_SUBMITTED and can be retried through /submit.
    """
    row = LeaveRequest(
        employee_id=actor.id,
        leave_type=data.leave_type,
        start_date=data.start_date,
        end_date=data.end_date,
        days_count=data.days_count,
        reason=sanitize_input(data.reason),
        status=LeaveStatus.NOT_SUBMITTED.value,
    )
    LeaveRequestRepository(db).add(row)
    db.commit()
    logger.info(f"Leave request {row.id} drafted by user {actor.id} for {data.days_count} day(s)")

    ApprovalEngine(db).submit_for_approval(row.id)
    return _response(db, row.id)


@router.post("/{request_id}/submit", response_model=LeaveRequestResponse)
def submit_leave_request(request_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_current_actor)):
    if _response(db, request_id).employee_id != actor.id:
        raise AccessDeniedError("Only the requester can submit a leave request")
    ApprovalEngine(db).submit_for_approval(request_id)
    return _response(db, request_id)


@router.get("/{request_id}", response_model=LeaveRequestResponse)
def get_leave_request(request_id: int, db: Session = Depends(get_db), actor_id: int = Depends(get_actor_id)):
    return _response(db, request_id)


@router.post("/{request_id}/decision", response_model=LeaveRequestResponse)
def decide_leave_request(
    request_id: int,
    decision: DecisionRequest,
    db: Session = Depends(get_db),
    actor_id: int = Depends(get_actor_id),
):
    ApprovalEngine(db).decide(request_id, actor_id, decision.action, decision.comments, decision.level)
    return _response(db, request_id)


@router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
def cancel_leave_request(request_id: int, db: Session = Depends(get_db), actor_id: int = Depends(get_actor_id)):
    ApprovalEngine(db).cancel(request_id, actor_id)
    return _response(db, request_id)


@router.post("/{request_id}/deletion-request", response_model=LeaveRequestResponse)
def request_leave_deletion(request_id: int, db: Session = Depends(get_db), actor_id: int = Depends(get_actor_id)):
    ApprovalEngine(db).request_deletion(request_id, actor_id)
    return _response(db, request_id)


@router.post("/{request_id}/deletion-decision", response_model=LeaveRequestResponse)
def decide_leave_deletion(
    request_id: int,
    decision: DeletionDecisionRequest,
    db: Session = Depends(get_db),
    actor_id: int = Depends(get_actor_id),
):
    ApprovalEngine(db).decide_deletion(request_id, actor_id, decision.action, decision.comments)
    return _response(db, request_id)


@router.get("/{request_id}/can-act", response_model=CanActResponse)
def can_act(
    request_id: int,
    action: ApprovalAction = ApprovalAction.APPROVE,
    db: Session = Depends(get_db),
    actor_id: int = Depends(get_actor_id),
):
    """Preview whether the caller may take the action now. Changes nothing."""
    allowed = ApprovalEngine(db).can_act(actor_id, request_id, action)
    return CanActResponse(request_id=request_id, actor_id=actor_id, action=action, allowed=allowed)
