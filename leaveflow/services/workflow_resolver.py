"""
Workflow Resolver: picks the single active workflow for a leave duration.
"""
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from leaveflow.core.config import settings
from leaveflow.core.exceptions import NotFoundError, ValidationError
from leaveflow.schemas.workflow import ApprovalWorkflowResponse

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _updated_at(workflow: ApprovalWorkflowResponse) -> datetime:
    ts = workflow.updated_at or workflow.created_at
    if ts is None:
        return _EPOCH
    # SQLite hands back naive datetimes
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _precedence(workflow: ApprovalWorkflowResponse):
    # Narrowest range first, then most recently updated, then newest id
    return (workflow.max_days - workflow.min_days, -_updated_at(workflow).timestamp(), -workflow.id)


def resolve_workflow(
    workflows: Sequence[ApprovalWorkflowResponse], duration_days: float
) -> Optional[ApprovalWorkflowResponse]:
    if duration_days is None or duration_days <= 0:
        raise ValidationError("Leave duration must be a positive number of days", details={"duration_days": duration_days})

    matches = [
        wf for wf in workflows
        if wf.is_active and wf.min_days <= duration_days <= wf.max_days
    ]
    if not matches:
        return None
    if len(matches) > 1:
        logger.info(
            f"{len(matches)} workflows match {duration_days} days; choosing by narrowest range",
            extra={"candidates": [wf.id for wf in matches]}
        )
    return min(matches, key=_precedence)


class WorkflowSnapshotCache:
    """Process-wide snapshot of active workflows, refreshed after ttl_seconds."""

    def __init__(self, ttl_seconds: float = 30.0):
        self.ttl_seconds = ttl_seconds
        self._snapshot: Optional[List[ApprovalWorkflowResponse]] = None
        self._loaded_at = 0.0
        self._lock = threading.Lock()

    def get(self, loader: Callable[[], List[ApprovalWorkflowResponse]]) -> List[ApprovalWorkflowResponse]:
        with self._lock:
            now = time.monotonic()
            if self._snapshot is None or now - self._loaded_at > self.ttl_seconds:
                self._snapshot = loader()
                self._loaded_at = now
            return list(self._snapshot)

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None


workflow_cache = WorkflowSnapshotCache(settings.workflow_cache_ttl_seconds)


class WorkflowResolver:
    """
    Resolves workflows from a loader of active workflows. With caching on,
    a snapshot up to ttl_seconds old may be served, so callers that persist
    the result must re-check the workflow is still active.
    """

    def __init__(
        self,
        loader: Callable[[], List[ApprovalWorkflowResponse]],
        cache: Optional[WorkflowSnapshotCache] = None,
    ):
        self._loader = loader
        self._cache = cache

    def _workflows(self) -> List[ApprovalWorkflowResponse]:
        if self._cache is None:
            return self._loader()
        return self._cache.get(self._loader)

    def find(self, duration_days: float) -> Optional[ApprovalWorkflowResponse]:
        return resolve_workflow(self._workflows(), duration_days)

    def resolve(self, duration_days: float) -> ApprovalWorkflowResponse:
        workflow = self.find(duration_days)
        if workflow is None:
            raise NotFoundError(
                f"No active approval workflow covers {duration_days} days",
                details={"duration_days": duration_days}
            )
        return workflow
