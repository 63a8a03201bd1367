from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from leaveflow.database import get_db
from leaveflow.routers.auth_deps import require_admin
from leaveflow.schemas.approval import ActorContext
from leaveflow.schemas.workflow import (
    ApprovalWorkflowCreate,
    ApprovalWorkflowResponse,
    ApprovalWorkflowUpdate,
)
from leaveflow.services.approval_workflow_service import ApprovalWorkflowService

router = APIRouter(prefix="/approval-workflows", tags=["approval-workflows"])


@router.get("", response_model=List[ApprovalWorkflowResponse])
def list_workflows(
    is_active: Optional[bool] = None,
    category_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return ApprovalWorkflowService(db).list_workflows(is_active, category_id)


@router.post("", response_model=ApprovalWorkflowResponse, status_code=status.HTTP_201_CREATED)
def create_workflow(
    data: ApprovalWorkflowCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return ApprovalWorkflowService(db, actor).create_workflow(data)


@router.get("/for-duration/{days}", response_model=ApprovalWorkflowResponse)
def workflow_for_duration(days: float, db: Session = Depends(get_db)):
    """The active workflow a request of this many days would be submitted under."""
    return ApprovalWorkflowService(db).workflow_for_duration(days)


@router.post("/initialize-defaults", response_model=List[ApprovalWorkflowResponse])
def initialize_defaults(db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    return ApprovalWorkflowService(db, actor).initialize_default_workflows()


@router.get("/{workflow_id}", response_model=ApprovalWorkflowResponse)
def get_workflow(workflow_id: int, db: Session = Depends(get_db)):
    return ApprovalWorkflowService(db).get_workflow(workflow_id)


@router.put("/{workflow_id}", response_model=ApprovalWorkflowResponse)
def update_workflow(
    workflow_id: int,
    data: ApprovalWorkflowUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return ApprovalWorkflowService(db, actor).update_workflow(workflow_id, data)


@router.patch("/{workflow_id}/toggle-status", response_model=ApprovalWorkflowResponse)
def toggle_workflow(workflow_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    return ApprovalWorkflowService(db, actor).toggle_status(workflow_id)


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workflow(workflow_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    ApprovalWorkflowService(db, actor).delete_workflow(workflow_id)
