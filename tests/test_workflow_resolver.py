import pytest
from datetime import datetime, timedelta, timezone

from leaveflow.core.exceptions import NotFoundError, ValidationError
from leaveflow.schemas.workflow import ApprovalStepSchema, ApprovalWorkflowCreate, ApprovalWorkflowResponse
from leaveflow.services.approval_workflow_service import ApprovalWorkflowService
from leaveflow.services.workflow_resolver import WorkflowResolver, WorkflowSnapshotCache, resolve_workflow

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _workflow(id, min_days, max_days, is_active=True, updated_minutes=0):
    return ApprovalWorkflowResponse(
        id=id,
        name=f"wf-{id}",
        min_days=min_days,
        max_days=max_days,
        approval_levels=[ApprovalStepSchema(level=1, approver_type="team_lead")],
        is_active=is_active,
        updated_at=BASE_TIME + timedelta(minutes=updated_minutes),
    )


def test_unique_match_is_returned():
    short, long = _workflow(1, 0.5, 2), _workflow(2, 2.5, 10)
    for days in (0.5, 1, 2):
        assert resolve_workflow([short, long], days).id == 1
    for days in (2.5, 7, 10):
        assert resolve_workflow([short, long], days).id == 2


def test_only_the_containing_range_matches():
    """1-3 and 3-5 overlap only at 3; 4 days falls in 3-5 alone."""
    assert resolve_workflow([_workflow(1, 1, 3), _workflow(2, 3, 5)], 4).id == 2


def test_overlap_prefers_narrowest_range():
    wide, narrow = _workflow(1, 1, 10), _workflow(2, 3, 5)
    assert resolve_workflow([wide, narrow], 3).id == 2
    assert resolve_workflow([narrow, wide], 3).id == 2


def test_equal_width_prefers_most_recently_updated():
    older = _workflow(5, 1, 3, updated_minutes=0)
    newer = _workflow(4, 3, 5, updated_minutes=10)
    assert resolve_workflow([older, newer], 3).id == 4


def test_full_tie_prefers_highest_id():
    a, b = _workflow(7, 1, 3), _workflow(9, 3, 5)
    assert resolve_workflow([a, b], 3).id == 9
    assert resolve_workflow([b, a], 3).id == 9


def test_inactive_workflows_are_ignored():
    assert resolve_workflow([_workflow(1, 1, 5, is_active=False)], 2) is None


def test_no_match_returns_none():
    assert resolve_workflow([_workflow(1, 1, 5)], 6) is None


@pytest.mark.parametrize("days", [0, -1])
def test_non_positive_duration_is_rejected(days):
    with pytest.raises(ValidationError):
        resolve_workflow([_workflow(1, 0.5, 5)], days)


def test_resolver_raises_not_found_when_nothing_matches():
    resolver = WorkflowResolver(lambda: [_workflow(1, 1, 2)])
    with pytest.raises(NotFoundError):
        resolver.resolve(3)


def test_cache_serves_snapshot_until_invalidated():
    calls = []

    def loader():
        calls.append(1)
        return [_workflow(1, 1, 5)]

    cache = WorkflowSnapshotCache(ttl_seconds=60)
    resolver = WorkflowResolver(loader, cache)
    resolver.find(2)
    resolver.find(3)
    assert len(calls) == 1

    cache.invalidate()
    resolver.find(2)
    assert len(calls) == 2


def test_cache_reloads_after_ttl():
    calls = []

    def loader():
        calls.append(1)
        return []

    cache = WorkflowSnapshotCache(ttl_seconds=0)
    cache.get(loader)
    cache.get(loader)
    assert len(calls) == 2


def test_workflow_for_duration_reads_active_workflows(db_session, default_workflows):
    service = ApprovalWorkflowService(db_session)
    assert service.workflow_for_duration(1).name == "Short Leave"
    assert service.workflow_for_duration(4).name == "Medium Leave"
    assert service.workflow_for_duration(30).name == "Long Leave"

    # Gaps between ranges resolve to nothing
    with pytest.raises(NotFoundError):
        service.workflow_for_duration(2.25)


def test_narrower_stored_workflow_wins(db_session, seeded_registries):
    service = ApprovalWorkflowService(db_session)
    step = [ApprovalStepSchema(level=1, approver_type="team_lead")]
    service.create_workflow(ApprovalWorkflowCreate(name="One to three", min_days=1, max_days=3, approval_levels=step))
    service.create_workflow(ApprovalWorkflowCreate(name="Three to six", min_days=3, max_days=6, approval_levels=step))

    assert service.workflow_for_duration(3).name == "One to three"
    assert service.workflow_for_duration(4).name == "Three to six"
