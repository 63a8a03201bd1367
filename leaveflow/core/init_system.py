import logging
from leaveflow.database import SessionLocal
from leaveflow.services.approver_type_service import ApproverTypeService
from leaveflow.services.workflow_level_service import WorkflowLevelService

logger = logging.getLogger(__name__)


def init_system_data():
    """
    Seeds the approver type registry and the workflow level catalog on an
    empty database. Workflows themselves are left to administrators.
    """
    db = SessionLocal()
    try:
        created = ApproverTypeService(db).initialize_defaults()
        WorkflowLevelService(db).initialize_defaults()
        if created:
            logger.info(f"✓ Seeded {len(created)} approver type(s) and the default level catalog")
        else:
            logger.info("System initialization check: approver types already present")
    except Exception as e:
        db.rollback()
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
    finally:
        db.close()
