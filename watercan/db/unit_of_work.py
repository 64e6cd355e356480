# watercan/db/unit_of_work.py
"""
Unit-of-work helper shared by the ledger services.

Every mutating service call runs its reads and writes inside
``unit_of_work(db)``: the block either commits as a whole or is rolled
back as a whole. Store-level failures are converted into ``StoreError``
so callers only ever see the ledger error taxonomy.
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from watercan.core.exceptions import ConcurrentUpdate, LedgerError, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, name: str = "operation"):
    try:
        yield db
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except StaleDataError as exc:
        db.rollback()
        logger.warning("%s aborted: concurrent update detected (%s)", name, exc)
        raise ConcurrentUpdate() from exc
    except IntegrityError as exc:
        db.rollback()
        logger.warning("%s aborted: integrity conflict (%s)", name, exc.orig)
        raise ConcurrentUpdate() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s aborted: store failure", name)
        raise StoreError() from exc
    except Exception:
        db.rollback()
        raise


def lock_one(query):
    """Fetch a single row with ``SELECT ... FOR UPDATE``.

    ``populate_existing`` makes sure an instance already sitting in the
    identity map is refreshed from the locked row instead of reusing
    values read earlier in the session.
    """
    return query.with_for_update().populate_existing().first()
