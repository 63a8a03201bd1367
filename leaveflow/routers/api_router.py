from fastapi import APIRouter
from leaveflow.routers import (
    approver_types, workflow_categories, workflow_levels, approval_workflows, leave_requests
)

# Routers are aggregated here; main.py only imports this hub.
api_router = APIRouter()

api_router.include_router(approver_types.router, tags=["Approver Types"])
api_router.include_router(workflow_categories.router, tags=["Workflow Categories"])
api_router.include_router(workflow_levels.router, tags=["Workflow Levels"])
api_router.include_router(approval_workflows.router, tags=["Approval Workflows"])
api_router.include_router(leave_requests.router, tags=["Leave Requests"])
