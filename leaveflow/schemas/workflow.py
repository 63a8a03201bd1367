"""
Schemas for the approval registries: approver types, workflow categories,
the workflow level catalog and approval workflows.

Payloads use camelCase on the wire (minDays, approvalLevels, ...) and
snake_case in Python.
"""
import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from leaveflow.models.user import UserRole

SPECIFIC_USER = "specificUser"

# Codes and role names that older clients send
LEGACY_CODE_ALIASES = {
    "teamLead": "team_lead",
    "departmentHead": "department_head",
    "superAdmin": "super_admin",
    "specific_user": SPECIFIC_USER,
}

_CODE_RE = re.compile(r"^[a-z][a-z0-9_]*$")


def normalize_approver_type_code(code: str) -> str:
    code = (code or "").strip()
    return LEGACY_CODE_ALIASES.get(code, code)


def normalize_role(role: str) -> str:
    """'TEAM_LEAD', 'teamLead' and 'team_lead' all map to UserRole.TEAM_LEAD."""
    value = LEGACY_CODE_ALIASES.get(role.strip(), role.strip()).lower()
    try:
        return UserRole(value).value
    except ValueError:
        raise ValueError(f"Unknown role '{role}'")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Approver types ---

class ApproverTypeBase(CamelModel):
    name: str = Field(min_length=1)
    code: str
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = normalize_approver_type_code(v)
        if v == SPECIFIC_USER:
            raise ValueError(f"'{SPECIFIC_USER}' is reserved")
        if not _CODE_RE.match(v):
            raise ValueError("code must be lowercase letters, digits and underscores")
        return v


class ApproverTypeCreate(ApproverTypeBase):
    pass


class ApproverTypeUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ApproverTypeResponse(ApproverTypeBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- Workflow categories ---

class WorkflowCategoryBase(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    min_days: float = Field(ge=0.5)
    max_days: float = Field(ge=0.5)
    max_steps: int = Field(ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def check_range(self):
        if self.min_days > self.max_days:
            raise ValueError("minDays must not exceed maxDays")
        return self


class WorkflowCategoryCreate(WorkflowCategoryBase):
    pass


class WorkflowCategoryUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    min_days: Optional[float] = Field(default=None, ge=0.5)
    max_days: Optional[float] = Field(default=None, ge=0.5)
    max_steps: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class WorkflowCategoryResponse(WorkflowCategoryBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- Workflow level catalog ---

class WorkflowLevelBase(CamelModel):
    level: int = Field(ge=1)
    name: str = Field(min_length=1)
    description: Optional[str] = None
    approver_type: str
    fallback_roles: List[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("approver_type")
    @classmethod
    def validate_approver_type(cls, v: str) -> str:
        return normalize_approver_type_code(v)

    @field_validator("fallback_roles")
    @classmethod
    def validate_fallback_roles(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(normalize_role(r) for r in v))


class WorkflowLevelCreate(WorkflowLevelBase):
    pass


class WorkflowLevelUpdate(CamelModel):
    level: Optional[int] = Field(default=None, ge=1)
    name: Optional[str] = None
    description: Optional[str] = None
    approver_type: Optional[str] = None
    fallback_roles: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("approver_type")
    @classmethod
    def validate_approver_type(cls, v: Optional[str]) -> Optional[str]:
        return normalize_approver_type_code(v) if v is not None else v

    @field_validator("fallback_roles")
    @classmethod
    def validate_fallback_roles(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return list(dict.fromkeys(normalize_role(r) for r in v))


class WorkflowLevelResponse(WorkflowLevelBase):
    id: int


# --- Approval workflows ---

class ApprovalStepSchema(CamelModel):
    level: int = Field(ge=1)
    approver_type: str
    roles: List[str] = Field(default_factory=list)
    fallback_roles: List[str] = Field(default_factory=list)
    department_specific: bool = False
    required: bool = True

    @field_validator("approver_type")
    @classmethod
    def validate_approver_type(cls, v: str) -> str:
        return normalize_approver_type_code(v)

    @field_validator("fallback_roles")
    @classmethod
    def validate_fallback_roles(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(normalize_role(r) for r in v))

    @model_validator(mode="after")
    def validate_roles(self):
        if self.approver_type == SPECIFIC_USER:
            users = [str(r).strip() for r in self.roles if str(r).strip()]
            if len(users) != 1:
                raise ValueError(f"a {SPECIFIC_USER} step must name exactly one user")
            self.roles = users
            self.department_specific = False
        else:
            self.roles = list(dict.fromkeys(normalize_role(r) for r in self.roles))
        return self

    @property
    def is_specific_user(self) -> bool:
        return self.approver_type == SPECIFIC_USER


class ApprovalWorkflowBase(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category_id: Optional[int] = None
    min_days: float = Field(ge=0.5)
    max_days: float = Field(ge=0.5)
    approval_levels: List[ApprovalStepSchema] = Field(default_factory=list)
    is_active: bool = True

    @model_validator(mode="after")
    def check_range(self):
        if self.min_days > self.max_days:
            raise ValueError("minDays must not exceed maxDays")
        return self


class ApprovalWorkflowCreate(ApprovalWorkflowBase):
    pass


class ApprovalWorkflowUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    min_days: Optional[float] = Field(default=None, ge=0.5)
    max_days: Optional[float] = Field(default=None, ge=0.5)
    approval_levels: Optional[List[ApprovalStepSchema]] = None
    is_active: Optional[bool] = None


class ApprovalWorkflowResponse(ApprovalWorkflowBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def steps_from_orm(cls, data):
        # ORM rows keep their steps under .steps
        if hasattr(data, "steps") and not isinstance(data, dict):
            return {
                "id": data.id,
                "name": data.name,
                "description": data.description,
                "category_id": data.category_id,
                "min_days": data.min_days,
                "max_days": data.max_days,
                "approval_levels": [ApprovalStepSchema.model_validate(s) for s in data.steps],
                "is_active": data.is_active,
                "created_at": data.created_at,
                "updated_at": data.updated_at,
            }
        return data
