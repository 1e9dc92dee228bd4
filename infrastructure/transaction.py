"""Unit-of-work helper: one session, one commit (or rollback) per call."""

from __future__ import annotations

import logging
from typing import Any, Callable

from domain.exceptions import DomainError

log = logging.getLogger(__name__)


def run_in_transaction(session_factory, fn: Callable[[Any], Any]) -> Any:
    """Run ``fn(session)`` inside a transaction and return its result.

    Usage::

        calc_id = run_in_transaction(
            factory, lambda s: SaveCalculationUseCase().execute(s, "AAPL", data)
        )

    If *fn* raises, the transaction is rolled back and the exception
    propagates to the caller.
    """
    session = session_factory()
    try:
        result = fn(session)
        session.commit()
        return result
    except DomainError as exc:
        session.rollback()
        log.warning("Transaction rolled back: %s", exc)
        raise
    except Exception:
        session.rollback()
        log.exception("Transaction rolled back")
        raise
    finally:
        session.close()
