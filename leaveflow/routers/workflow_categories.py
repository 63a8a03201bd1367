from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from leaveflow.database import get_db
from leaveflow.routers.auth_deps import require_admin
from leaveflow.schemas.approval import ActorContext
from leaveflow.schemas.workflow import (
    WorkflowCategoryCreate,
    WorkflowCategoryResponse,
    WorkflowCategoryUpdate,
)
from leaveflow.services.workflow_category_service import WorkflowCategoryService

router = APIRouter(prefix="/workflow-categories", tags=["workflow-categories"])


@router.get("", response_model=List[WorkflowCategoryResponse])
def list_categories(is_active: Optional[bool] = None, db: Session = Depends(get_db)):
    return WorkflowCategoryService(db).list_categories(is_active)


@router.post("", response_model=WorkflowCategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    data: WorkflowCategoryCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return WorkflowCategoryService(db, actor).create_category(data)


@router.get("/{category_id}", response_model=WorkflowCategoryResponse)
def get_category(category_id: int, db: Session = Depends(get_db)):
    return WorkflowCategoryService(db).get_category(category_id)


@router.put("/{category_id}", response_model=WorkflowCategoryResponse)
def update_category(
    category_id: int,
    data: WorkflowCategoryUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return WorkflowCategoryService(db, actor).update_category(category_id, data)


@router.patch("/{category_id}/toggle-status", response_model=WorkflowCategoryResponse)
def toggle_category(category_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    return WorkflowCategoryService(db, actor).toggle_status(category_id)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    WorkflowCategoryService(db, actor).delete_category(category_id)
