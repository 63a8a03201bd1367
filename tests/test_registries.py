import pytest

from leaveflow.core.exceptions import NotFoundError, ValidationError
from leaveflow.models.approval_workflow import ApprovalWorkflow
from leaveflow.models.audit_log import AuditLog
from leaveflow.models.user import UserRole
from leaveflow.repositories.workflow_repository import WorkflowRepository
from leaveflow.schemas.approval import ActorContext
from leaveflow.schemas.workflow import (
    ApprovalStepSchema,
    ApprovalWorkflowCreate,
    ApprovalWorkflowUpdate,
    ApproverTypeCreate,
    WorkflowCategoryCreate,
    WorkflowCategoryUpdate,
    WorkflowLevelCreate,
    WorkflowLevelUpdate,
)
from leaveflow.services.approval_workflow_service import ApprovalWorkflowService
from leaveflow.services.approver_type_service import DEFAULT_APPROVER_TYPES, ApproverTypeService
from leaveflow.services.workflow_category_service import WorkflowCategoryService
from leaveflow.services.workflow_level_service import DEFAULT_WORKFLOW_LEVELS, WorkflowLevelService


def _step(level, approver_type="team_lead", **kwargs):
    return ApprovalStepSchema(level=level, approver_type=approver_type, **kwargs)


def _category(db_session, min_days=0.5, max_days=2, max_steps=1, name="Short"):
    return WorkflowCategoryService(db_session).create_category(
        WorkflowCategoryCreate(name=name, min_days=min_days, max_days=max_days, max_steps=max_steps)
    )


# --- Approver types ---

def test_default_approver_types_are_seeded_once(db_session):
    service = ApproverTypeService(db_session)
    assert len(service.initialize_defaults()) == len(DEFAULT_APPROVER_TYPES)
    assert service.initialize_defaults() == []
    assert "department_head" in service.active_codes()


def test_duplicate_approver_type_code_is_rejected(db_session, seeded_registries):
    with pytest.raises(ValidationError):
        ApproverTypeService(db_session).create_approver_type(ApproverTypeCreate(name="Lead", code="team_lead"))


def test_legacy_code_is_normalised(db_session):
    created = ApproverTypeService(db_session).create_approver_type(ApproverTypeCreate(name="Lead", code="teamLead"))
    assert created.code == "team_lead"


@pytest.mark.parametrize("code", ["Project Owner", "9lives", "specificUser"])
def test_malformed_approver_type_code_is_rejected(code):
    with pytest.raises(ValueError):
        ApproverTypeCreate(name="Bad", code=code)


def test_referenced_approver_type_can_only_be_deactivated(db_session, default_workflows):
    service = ApproverTypeService(db_session)
    team_lead = next(t for t in service.list_approver_types() if t.code == "team_lead")

    with pytest.raises(ValidationError):
        service.delete_approver_type(team_lead.id)

    toggled = service.toggle_status(team_lead.id)
    assert toggled.is_active is False
    assert "team_lead" not in service.active_codes()


def test_unreferenced_approver_type_can_be_deleted(db_session):
    service = ApproverTypeService(db_session)
    created = service.create_approver_type(ApproverTypeCreate(name="Project Owner", code="project_owner"))
    service.delete_approver_type(created.id)
    with pytest.raises(NotFoundError):
        service.get_approver_type(created.id)


# --- Workflow categories ---

def test_category_limits_step_count(db_session, seeded_registries):
    """0.5-2 days with at most one step: one step is fine, a second is not."""
    category = _category(db_session)
    service = ApprovalWorkflowService(db_session)
    workflow = service.create_workflow(ApprovalWorkflowCreate(
        name="A", category_id=category.id, min_days=0.5, max_days=2, approval_levels=[_step(1)],
    ))
    assert len(workflow.steps) == 1

    with pytest.raises(ValidationError):
        service.update_workflow(workflow.id, ApprovalWorkflowUpdate(approval_levels=[_step(1), _step(2, "manager")]))
    db_session.refresh(workflow)
    assert len(workflow.steps) == 1


def test_workflow_range_must_match_category(db_session, seeded_registries):
    category = _category(db_session)
    with pytest.raises(ValidationError):
        ApprovalWorkflowService(db_session).create_workflow(ApprovalWorkflowCreate(
            name="A", category_id=category.id, min_days=1, max_days=2, approval_levels=[_step(1)],
        ))


def test_zero_step_category_allows_no_steps(db_session, seeded_registries):
    category = _category(db_session, max_steps=0, name="Auto")
    service = ApprovalWorkflowService(db_session)
    workflow = service.create_workflow(ApprovalWorkflowCreate(
        name="Auto", category_id=category.id, min_days=0.5, max_days=2, approval_levels=[],
    ))
    assert workflow.steps == []
    with pytest.raises(ValidationError):
        service.create_workflow(ApprovalWorkflowCreate(
            name="Not auto", category_id=category.id, min_days=0.5, max_days=2, approval_levels=[_step(1)],
        ))


def test_inactive_category_cannot_take_workflows(db_session, seeded_registries):
    category = _category(db_session)
    WorkflowCategoryService(db_session).toggle_status(category.id)
    with pytest.raises(ValidationError):
        ApprovalWorkflowService(db_session).create_workflow(ApprovalWorkflowCreate(
            name="A", category_id=category.id, min_days=0.5, max_days=2, approval_levels=[_step(1)],
        ))


def test_shrinking_max_steps_below_attached_workflow_is_rejected(db_session, seeded_registries):
    category = _category(db_session, max_steps=2)
    workflow = ApprovalWorkflowService(db_session).create_workflow(ApprovalWorkflowCreate(
        name="Two steps", category_id=category.id, min_days=0.5, max_days=2,
        approval_levels=[_step(1), _step(2, "manager")],
    ))

    with pytest.raises(ValidationError) as exc:
        WorkflowCategoryService(db_session).update_category(category.id, WorkflowCategoryUpdate(max_steps=1))
    assert exc.value.details["workflows"][0]["id"] == workflow.id

    db_session.refresh(category)
    assert category.max_steps == 2


def test_category_range_change_propagates_to_workflows(db_session, seeded_registries):
    category = _category(db_session)
    workflow = ApprovalWorkflowService(db_session).create_workflow(ApprovalWorkflowCreate(
        name="A", category_id=category.id, min_days=0.5, max_days=2, approval_levels=[_step(1)],
    ))
    WorkflowCategoryService(db_session).update_category(category.id, WorkflowCategoryUpdate(max_days=3))
    db_session.refresh(workflow)
    assert (workflow.min_days, workflow.max_days) == (0.5, 3)


def test_category_with_workflows_cannot_be_deleted(db_session, seeded_registries):
    category = _category(db_session)
    ApprovalWorkflowService(db_session).create_workflow(ApprovalWorkflowCreate(
        name="A", category_id=category.id, min_days=0.5, max_days=2, approval_levels=[_step(1)],
    ))
    with pytest.raises(ValidationError):
        WorkflowCategoryService(db_session).delete_category(category.id)


def test_inverted_category_range_is_rejected():
    with pytest.raises(ValueError):
        WorkflowCategoryCreate(name="Bad", min_days=5, max_days=2, max_steps=1)


# --- Workflow validation ---

@pytest.mark.parametrize("levels", [[1, 3], [2], [1, 1], [2, 1, 4]])
def test_non_contiguous_levels_are_rejected(db_session, seeded_registries, levels):
    with pytest.raises(ValidationError):
        ApprovalWorkflowService(db_session).create_workflow(ApprovalWorkflowCreate(
            name="Bad", min_days=1, max_days=5, approval_levels=[_step(lvl) for lvl in levels],
        ))
    assert db_session.query(ApprovalWorkflow).count() == 0


def test_steps_may_arrive_unordered(db_session, seeded_registries):
    workflow = ApprovalWorkflowService(db_session).create_workflow(ApprovalWorkflowCreate(
        name="Unordered", min_days=1, max_days=5, approval_levels=[_step(2, "manager"), _step(1)],
    ))
    assert [s.level for s in workflow.steps] == [1, 2]


def test_uncategorised_workflow_needs_steps(db_session, seeded_registries):
    with pytest.raises(ValidationError):
        ApprovalWorkflowService(db_session).create_workflow(ApprovalWorkflowCreate(
            name="Empty", min_days=1, max_days=5, approval_levels=[],
        ))


def test_unknown_or_inactive_approver_type_is_rejected(db_session, seeded_registries):
    service = ApprovalWorkflowService(db_session)
    with pytest.raises(ValidationError):
        service.create_workflow(ApprovalWorkflowCreate(
            name="Unknown", min_days=1, max_days=5, approval_levels=[_step(1, "project_owner")],
        ))

    hr = next(t for t in ApproverTypeService(db_session).list_approver_types() if t.code == "hr")
    ApproverTypeService(db_session).toggle_status(hr.id)
    with pytest.raises(ValidationError):
        service.create_workflow(ApprovalWorkflowCreate(
            name="Inactive", min_days=1, max_days=5, approval_levels=[_step(1, "hr")],
        ))


def test_unknown_role_in_step_is_rejected():
    with pytest.raises(ValueError):
        ApprovalStepSchema(level=1, approver_type="team_lead", roles=["astronaut"])


def test_specific_user_step(db_session, seeded_registries, users):
    service = ApprovalWorkflowService(db_session)
    workflow = service.create_workflow(ApprovalWorkflowCreate(
        name="Named", min_days=1, max_days=5,
        approval_levels=[_step(1, "specific_user", roles=[str(users["hr"].id)], department_specific=True)],
    ))
    step = workflow.steps[0]
    assert step.approver_type == "specificUser"
    assert step.roles == [str(users["hr"].id)]
    assert step.department_specific is False

    with pytest.raises(ValidationError):
        service.create_workflow(ApprovalWorkflowCreate(
            name="Ghost", min_days=1, max_days=5, approval_levels=[_step(1, "specificUser", roles=["9999"])],
        ))


def test_specific_user_step_names_exactly_one_user():
    with pytest.raises(ValueError):
        ApprovalStepSchema(level=1, approver_type="specificUser", roles=["1", "2"])


def test_workflow_stays_editable_after_its_approver_type_is_deactivated(db_session, default_workflows):
    hr = next(t for t in ApproverTypeService(db_session).list_approver_types() if t.code == "hr")
    ApproverTypeService(db_session).toggle_status(hr.id)

    long_leave = next(wf for wf in default_workflows if wf.name == "Long Leave")
    updated = ApprovalWorkflowService(db_session).update_workflow(
        long_leave.id, ApprovalWorkflowUpdate(description="Three approvers")
    )
    assert updated.description == "Three approvers"


def test_replacing_steps(db_session, default_workflows):
    medium = next(wf for wf in default_workflows if wf.name == "Medium Leave")
    updated = ApprovalWorkflowService(db_session).update_workflow(
        medium.id, ApprovalWorkflowUpdate(approval_levels=[_step(1, "manager"), _step(2, "hr")])
    )
    assert [(s.level, s.approver_type) for s in updated.steps] == [(1, "manager"), (2, "hr")]


def test_default_workflows(db_session, default_workflows):
    assert [(wf.name, wf.min_days, wf.max_days, len(wf.steps)) for wf in default_workflows] == [
        ("Short Leave", 0.5, 2, 1),
        ("Medium Leave", 2.5, 5, 2),
        ("Long Leave", 5.5, 365, 3),
    ]
    assert [s.approver_type for s in default_workflows[2].steps] == ["team_lead", "manager", "hr"]
    assert ApprovalWorkflowService(db_session).initialize_default_workflows() == []


def test_registry_changes_are_audited(db_session, seeded_registries):
    _category(db_session)
    actions = {a for (a,) in db_session.query(AuditLog.action).all()}
    assert "create_workflow_category" in actions


def test_registry_audit_names_the_acting_admin(db_session, seeded_registries, users):
    admin = ActorContext(id=users["admin"].id, name="Admin", role=UserRole.ADMIN)
    category = WorkflowCategoryService(db_session, admin).create_category(
        WorkflowCategoryCreate(name="Week", min_days=3, max_days=7, max_steps=2)
    )
    WorkflowLevelService(db_session, admin).reset_to_defaults()

    entries = (
        db_session.query(AuditLog)
        .filter(AuditLog.action.in_(["create_workflow_category", "reset_workflow_levels"]))
        .all()
    )
    assert {e.entity_id for e in entries if e.action == "create_workflow_category"} == {category.id}
    assert {(e.user_id, e.user_role) for e in entries} == {(users["admin"].id, "admin")}


# --- Workflow level catalog ---

def test_level_catalog_reset_to_defaults(db_session, seeded_registries):
    service = WorkflowLevelService(db_session)
    first = service.list_levels()[0]
    service.update_level(first.id, WorkflowLevelUpdate(approver_type="hr", fallback_roles=["SUPER_ADMIN"]))
    service.create_level(WorkflowLevelCreate(level=5, name="Extra", approver_type="hr"))
    assert len(service.list_levels()) == len(DEFAULT_WORKFLOW_LEVELS) + 1

    levels = service.reset_to_defaults()
    assert [(lvl.level, lvl.approver_type) for lvl in levels] == [
        (seed["level"], seed["approver_type"]) for seed in DEFAULT_WORKFLOW_LEVELS
    ]


def test_level_numbers_are_unique(db_session, seeded_registries):
    with pytest.raises(ValidationError):
        WorkflowLevelService(db_session).create_level(WorkflowLevelCreate(level=1, name="Dup", approver_type="hr"))


def test_level_needs_known_approver_type(db_session, seeded_registries):
    with pytest.raises(ValidationError):
        WorkflowLevelService(db_session).create_level(
            WorkflowLevelCreate(level=9, name="Nobody", approver_type="project_owner")
        )


def test_levels_for_authoring_skip_inactive(db_session, seeded_registries):
    service = WorkflowLevelService(db_session)
    second = service.list_levels()[1]
    service.update_level(second.id, WorkflowLevelUpdate(is_active=False))
    assert [lvl.level for lvl in service.levels_for_workflow_authoring()] == [1, 3, 4]


def test_default_steps_come_from_catalog(db_session, seeded_registries):
    steps = WorkflowLevelService(db_session).default_steps(2)
    assert [(s.level, s.approver_type, s.fallback_roles) for s in steps] == [
        (1, "team_lead", ["manager"]),
        (2, "manager", ["hr"]),
    ]
    assert all(s.department_specific for s in steps)


# --- Read side ---

def test_workflow_repository_lists_registries(db_session, default_workflows):
    repo = WorkflowRepository(db_session)
    _category(db_session, min_days=6, max_days=10, max_steps=3, name="Week")
    _category(db_session, min_days=0.5, max_days=2, max_steps=1, name="Short")

    head = next(t for t in ApproverTypeService(db_session).list_approver_types() if t.code == "department_head")
    ApproverTypeService(db_session).toggle_status(head.id)

    assert "department_head" not in {t.code for t in repo.list_active_approver_types()}
    assert [c.name for c in repo.list_workflow_categories()] == ["Short", "Week"]
    assert [lvl.level for lvl in repo.list_workflow_levels()] == [1, 2, 3, 4]
    assert {wf.name for wf in repo.list_active_approval_workflows()} == {"Short Leave", "Medium Leave", "Long Leave"}
    assert repo.get_approval_workflow(9999) is None
