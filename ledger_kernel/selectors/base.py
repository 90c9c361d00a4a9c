"""
Module: ledger_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Selectors never add, delete, flush or commit.
    - Selectors return DTOs or plain values, not ORM instances.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Holds the caller's session; subclasses add queries."""

    def __init__(self, session: Session):
        self.session = session
