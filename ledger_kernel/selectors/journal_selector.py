"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only journal entry queries: single entry with resolved
    line accounts, filtered/paginated listings.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

from ledger_kernel.domain.dtos import EntryFilter, EntryPage, JournalEntryView
from ledger_kernel.domain.values import EntrySource, EntryStatus
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.base import BaseSelector


class JournalSelector(BaseSelector):

    def get_entry(self, entry_id: UUID) -> JournalEntryView | None:
        """Entry plus lines, each line carrying its account's code, names and type."""
        entry = self.session.execute(
            select(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .options(selectinload(JournalEntry.lines).joinedload(JournalEntryLine.account))
        ).scalar_one_or_none()
        return JournalEntryView.from_model(entry) if entry is not None else None

    def get_by_journal_no(self, journal_no: str) -> JournalEntryView | None:
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.journal_no == journal_no)
        ).scalar_one_or_none()
        return JournalEntryView.from_model(entry) if entry is not None else None

    def find_reversal_of(self, entry_id: UUID) -> JournalEntryView | None:
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.reversal_of_id == entry_id)
        ).scalar_one_or_none()
        return JournalEntryView.from_model(entry) if entry is not None else None

    def list_entries(self, criteria: EntryFilter | None = None) -> EntryPage:
        """
        Entries matching ``criteria``, newest transaction date first.

        ``search`` matches journal_no, description or reference
        (case-insensitive substring).
        """
        criteria = criteria or EntryFilter()
        query = select(JournalEntry)
        if criteria.status is not None:
            query = query.where(JournalEntry.status == EntryStatus(criteria.status).value)
        if criteria.source is not None:
            query = query.where(JournalEntry.source == EntrySource(criteria.source).value)
        if criteria.date_from is not None:
            query = query.where(JournalEntry.transaction_date >= criteria.date_from)
        if criteria.date_to is not None:
            query = query.where(JournalEntry.transaction_date <= criteria.date_to)
        if criteria.search:
            pattern = f"%{criteria.search.lower()}%"
            query = query.where(
                or_(
                    func.lower(JournalEntry.journal_no).like(pattern),
                    func.lower(JournalEntry.description).like(pattern),
                    func.lower(func.coalesce(JournalEntry.reference, "")).like(pattern),
                )
            )

        total = self.session.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()

        rows = self.session.scalars(
            query.order_by(
                JournalEntry.transaction_date.desc(), JournalEntry.journal_no.desc()
            )
            .offset((criteria.page - 1) * criteria.page_size)
            .limit(criteria.page_size)
        ).all()

        return EntryPage(
            entries=tuple(JournalEntryView.from_model(e) for e in rows),
            total=total,
            page=criteria.page,
            page_size=criteria.page_size,
        )
