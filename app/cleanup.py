"""
CLI entrypoint for expired-token garbage collection. Run from cron, e.g.:

  python -m app.cleanup

Or hourly: 0 * * * * cd /path/to/inboxdesk && .venv/bin/python -m app.cleanup
"""

import logging
import sys

from app.api.deps import build_auth_service
from app.core.config import get_settings
from app.core.database import SessionLocal
from app.stores.sql import SqlUserStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete refresh and verification tokens whose expiry has passed."""
    settings = get_settings()
    db = SessionLocal()
    try:
        service = build_auth_service(SqlUserStore(db), settings)
        refresh_deleted = service.cleanup_expired_tokens()
        verification_deleted = service.cleanup_expired_verification_tokens()
        logger.info(
            "Token cleanup completed: refresh_tokens_deleted=%s verification_tokens_deleted=%s",
            refresh_deleted,
            verification_deleted,
        )
        return 0
    except Exception as e:
        logger.exception("Token cleanup failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
