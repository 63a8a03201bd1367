from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from leaveflow.database import get_db
from leaveflow.routers.auth_deps import require_admin
from leaveflow.schemas.approval import ActorContext
from leaveflow.schemas.workflow import WorkflowLevelCreate, WorkflowLevelResponse, WorkflowLevelUpdate
from leaveflow.services.workflow_level_service import WorkflowLevelService

router = APIRouter(prefix="/workflow-levels", tags=["workflow-levels"])


@router.get("", response_model=List[WorkflowLevelResponse])
def list_levels(db: Session = Depends(get_db)):
    return WorkflowLevelService(db).list_levels()


@router.get("/for-approval-workflow", response_model=List[WorkflowLevelResponse])
def levels_for_approval_workflow(db: Session = Depends(get_db)):
    """Active levels in chain order, for seeding the steps of a new workflow."""
    return WorkflowLevelService(db).levels_for_workflow_authoring()


@router.post("", response_model=WorkflowLevelResponse, status_code=status.HTTP_201_CREATED)
def create_level(
    data: WorkflowLevelCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return WorkflowLevelService(db, actor).create_level(data)


@router.post("/reset-defaults", response_model=List[WorkflowLevelResponse])
def reset_defaults(db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    return WorkflowLevelService(db, actor).reset_to_defaults()


@router.put("/{level_id}", response_model=WorkflowLevelResponse)
def update_level(
    level_id: int,
    data: WorkflowLevelUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return WorkflowLevelService(db, actor).update_level(level_id, data)


@router.delete("/{level_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_level(level_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    WorkflowLevelService(db, actor).delete_level(level_id)
