"""
Secret Santa API launcher.

Host, port and database come from the environment (see secret_santa/config.py).
Startup failures exit non-zero with a hint for the usual culprits.
"""

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from secret_santa.config import settings
from secret_santa.main import run

logger = logging.getLogger("secret_santa.launcher")


def main() -> int:
    try:
        run()
    except SQLAlchemyError:
        logger.exception("Database unavailable at %s", settings.resolved_database_url)
        print("\nCheck DATABASE_URL / DB_PATH and that the directory is writable.")
        return 1
    except OSError:
        logger.exception("Could not bind %s:%s", settings.host, settings.port)
        print("\nIs another process already listening on PORT?")
        return 1
    except Exception:
        logger.exception("Secret Santa API failed to start")
        return 1
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
