import os
import enum
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


class NoWorkflowPolicy(str, enum.Enum):
    """What to do with a request whose duration matches no active workflow."""
    AUTO_APPROVE = "auto_approve"
    BLOCK = "block"
    ERROR = "error"


class PermissionMode(str, enum.Enum):
    """
    How approval permissions are decided.

    - ROLE_LEVEL: flat role ranking (team_lead=1 ... super_admin=5) compared
      against the next required level. Compatibility mode.
    - STEP_BINDING: the actor must match the frozen step definition
      (approver type, roles, fallback roles, department scope).
    """
    ROLE_LEVEL = "role_level"
    STEP_BINDING = "step_binding"


def _optional_policy() -> Optional[NoWorkflowPolicy]:
    raw = os.getenv("NO_WORKFLOW_POLICY", "").strip().lower()
    return NoWorkflowPolicy(raw) if raw else None


def _caching_enabled() -> bool:
    return os.getenv("ENABLE_CACHING", "false").strip().lower() == "true"


class Config(BaseModel):
    app_name: str = "Leave Approval Workflow Engine"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./leaveflow.db")

    # Approval engine
    # No default on purpose: integrators must choose how unmatched durations behave.
    no_workflow_policy: Optional[NoWorkflowPolicy] = Field(default_factory=_optional_policy)
    permission_mode: PermissionMode = PermissionMode(
        os.getenv("PERMISSION_MODE", PermissionMode.STEP_BINDING.value).strip().lower()
    )
    enable_caching: bool = Field(default_factory=_caching_enabled)
    workflow_cache_ttl_seconds: float = float(os.getenv("WORKFLOW_CACHE_TTL_SECONDS", "30"))

    # Enterprise Architecture
    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    request_id_header: str = "X-Request-ID"
    actor_id_header: str = "X-Actor-ID"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

    # Rate limiting
    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))


settings = Config()

# --- Startup Validation ---
_logger = logging.getLogger(__name__)
if settings.no_workflow_policy is None:
    _logger.warning(
        "⚠ NO_WORKFLOW_POLICY is not set; submitting a request that matches no "
        "active workflow will fail until it is configured."
    )
