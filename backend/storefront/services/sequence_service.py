# Overview: Atomic allocation of human-facing order numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models import OrderNumberSequence
from ..time_utils import utcnow


def next_order_number(session: Session, *, prefix: str = "ORD", pad: int = 4, now=None) -> str:
    """
    Allocate the next order number for today, e.g. "ORD-20260114-0007".

    Runs inside the caller's write transaction and never commits. The
    counter row is bumped with a single UPDATE so two checkouts can never
    read the same value. A concurrent first insert for a new day fails on
    the unique sequence_key; callers retry the whole unit on IntegrityError.
    """
    if not prefix:
        raise ValidationError("Order number prefix is required")

    day = (now or utcnow()).strftime("%Y%m%d")
    key = f"{prefix}-{day}"

    result = session.execute(
        update(OrderNumberSequence)
        .where(OrderNumberSequence.sequence_key == key)
        .values(next_number=OrderNumberSequence.next_number + 1)
    )
    if result.rowcount:
        session.flush()
        current = (
            session.query(OrderNumberSequence.next_number)
            .filter_by(sequence_key=key)
            .scalar()
        )
        number = current - 1
    else:
        session.add(OrderNumberSequence(sequence_key=key, next_number=2))
        session.flush()
        number = 1

    return f"{key}-{number:0{pad}d}"
