"""
SequenceService -- daily document numbers via locked counter rows.

Responsibility:
    Issues human-readable document numbers of the form
    ``PREFIX-YYYYMMDD-NNNNNN`` (SRN, dispatch, GRN, invoice, sale, batch,
    return) and the raw monotonic values that order the inventory log.
    Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) so concurrent callers never share a number.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by every module service that creates a numbered document.  The
    inventory log does not use it; its order comes from an autoincrement key.

Invariants enforced:
    - Numbers are unique per (prefix, UTC day) and strictly increasing
      within it.  The count restarts at 1 each day.
    - The aggregate-max-plus-one pattern is never used; the locked counter
      row is the only source of the next value.
    - The increment is transactional: a rolled-back use case returns its
      number.

Failure modes:
    - IntegrityError: concurrent first creation of a counter row (handled
      via savepoint rollback and a locked re-read).

Audit relevance:
    Allocation is logged at DEBUG with sequence_name and value.
"""

from collections.abc import Mapping

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from supply_kernel.db.base import Base
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import InvalidArgumentError
from supply_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is one named sequence with its current value.  Document
    counters are named ``PREFIX-YYYYMMDD``.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        ``next_number(prefix)`` returns the next document number for today's
        UTC date; ``next_value(name)`` is the raw locked increment both use.

    Guarantees:
        - ``SELECT ... FOR UPDATE`` serializes allocations on one counter.
        - Gap-free under normal operation; a rollback returns the value.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        with transaction(session):
            number = sequences.next_number(SequenceService.SRN)
    """

    # Document prefixes
    SRN = "SRN"
    DISPATCH = "DO"
    GRN = "GRN"
    INVOICE = "INV"
    SALE = "SALE"
    BATCH = "BATCH"
    RETURN = "RET"

    DEFAULT_PAD_WIDTH = 6

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        pad_width: int = DEFAULT_PAD_WIDTH,
        prefixes: Mapping[str, str] | None = None,
    ):
        if pad_width < 1:
            raise InvalidArgumentError("pad_width", "must be >= 1")
        self._session = session
        self._clock = clock or SystemClock()
        self._pad_width = pad_width
        # Default prefix -> configured prefix
        self._prefixes = dict(prefixes or {})

    def _lock_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Preconditions:
            - ``sequence_name`` is a non-empty string.
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer > 0 strictly greater than any value
              previously returned for this name.
            - The counter row is locked until the transaction completes.
        """
        if not sequence_name:
            raise InvalidArgumentError("sequence_name", "must be non-empty")

        counter = self._lock_counter(sequence_name)

        if counter is None:
            # First use of this sequence.  Another session may create the
            # row concurrently; the savepoint keeps the caller's work intact.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def _daily_name(self, prefix: str) -> str:
        if not prefix:
            raise InvalidArgumentError("prefix", "must be non-empty")
        prefix = self._prefixes.get(prefix, prefix)
        return f"{prefix}-{self._clock.document_date():%Y%m%d}"

    def next_number(self, prefix: str) -> str:
        """
        Allocate the next document number for ``prefix``.

        Postconditions:
            - Returns ``PREFIX-YYYYMMDD-NNNNNN`` with the count zero-padded
              to ``pad_width`` digits (wider counts are not truncated).
        """
        counter_name = self._daily_name(prefix)
        value = self.next_value(counter_name)
        number = f"{counter_name}-{value:0{self._pad_width}d}"
        logger.info(
            "document_number_allocated",
            extra={"prefix": counter_name.rsplit("-", 1)[0], "document_number": number},
        )
        return number

    def current_value(self, prefix: str) -> int:
        """Today's counter for ``prefix`` without incrementing; 0 if unused."""
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == self._daily_name(prefix))
        ).scalar_one_or_none()

        return counter.current_value if counter else 0
