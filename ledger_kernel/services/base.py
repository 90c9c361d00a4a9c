"""
BaseService -- common constructor for kernel services.

Services flush within the caller's unit of work and never commit or roll
back; ``LedgerStore.unit_of_work()`` owns those boundaries so that a
multi-step operation (post: status + balances + transactions) is atomic.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Contract:
        Receives an open Session and persists changes with ``flush()``.

    Non-goals:
        - Does NOT call ``session.commit()`` or ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session
