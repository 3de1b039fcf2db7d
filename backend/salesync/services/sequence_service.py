# Overview: Sale number allocation backed by the document_sequences table.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


SALE_DOCUMENT_TYPE = "SALE"
SALE_NUMBER_PREFIX = "SALE"
SALE_NUMBER_PAD = 6


def format_sale_number(number: int) -> str:
    """Presentation form of a sequence value: 42 -> 'SALE-000042'."""
    return f"{SALE_NUMBER_PREFIX}-{number:0{SALE_NUMBER_PAD}d}"


def _current_value(document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )


def next_sequence_value(document_type: str) -> int:
    """
    Atomically allocate the next number for a document type.

    Runs inside the caller's transaction: the counter increment commits or
    rolls back together with the document that consumes it. Must be the first
    write of that transaction, because losing the first-insert race rolls
    the session back.
    """
    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        return _current_value(document_type) - 1

    seq = DocumentSequence(document_type=document_type, next_number=2)
    db.session.add(seq)
    try:
        db.session.flush()
        return 1
    except IntegrityError:
        # Another transaction created the row first
        db.session.rollback()
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        db.session.flush()
        return _current_value(document_type) - 1


def next_sale_number() -> str:
    return format_sale_number(next_sequence_value(SALE_DOCUMENT_TYPE))
