"""
Reprocess a single resume by ID

Usage: python scripts/reprocess_single_resume.py <resume_id>
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session
from app.auth.dependencies import CurrentUser
from app.core.database import SessionLocal
from app.core.logging_config import configure_logging
from app.resumes.service import ADMIN_ROLE, resume_service
import structlog

logger = structlog.get_logger()


def main(resume_id: int):
    configure_logging()
    db: Session = SessionLocal()
    try:
        operator = CurrentUser(id=0, email="cli", roles=[ADMIN_ROLE])
        result = resume_service.reprocess(db, resume_id, operator)
        logger.info("resume_reprocess_requested", **result)
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    main(int(sys.argv[1]))
