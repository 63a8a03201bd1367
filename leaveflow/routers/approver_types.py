from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from leaveflow.database import get_db
from leaveflow.routers.auth_deps import require_admin
from leaveflow.schemas.approval import ActorContext
from leaveflow.schemas.workflow import ApproverTypeCreate, ApproverTypeResponse, ApproverTypeUpdate
from leaveflow.services.approver_type_service import ApproverTypeService

router = APIRouter(prefix="/approver-types", tags=["approver-types"])


@router.get("", response_model=List[ApproverTypeResponse])
def list_approver_types(is_active: Optional[bool] = None, db: Session = Depends(get_db)):
    return ApproverTypeService(db).list_approver_types(is_active)


@router.post("", response_model=ApproverTypeResponse, status_code=status.HTTP_201_CREATED)
def create_approver_type(
    data: ApproverTypeCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return ApproverTypeService(db, actor).create_approver_type(data)


@router.post("/initialize-defaults", response_model=List[ApproverTypeResponse])
def initialize_defaults(db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    """Seed the built-in approver types that are missing; returns only the new ones."""
    return ApproverTypeService(db, actor).initialize_defaults()


@router.get("/{approver_type_id}", response_model=ApproverTypeResponse)
def get_approver_type(approver_type_id: int, db: Session = Depends(get_db)):
    return ApproverTypeService(db).get_approver_type(approver_type_id)


@router.put("/{approver_type_id}", response_model=ApproverTypeResponse)
def update_approver_type(
    approver_type_id: int,
    data: ApproverTypeUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return ApproverTypeService(db, actor).update_approver_type(approver_type_id, data)


@router.patch("/{approver_type_id}/toggle-status", response_model=ApproverTypeResponse)
def toggle_approver_type(
    approver_type_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    return ApproverTypeService(db, actor).toggle_status(approver_type_id)


@router.delete("/{approver_type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_approver_type(
    approver_type_id: int,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_admin),
):
    ApproverTypeService(db, actor).delete_approver_type(approver_type_id)
