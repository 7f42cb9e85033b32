"""Persistence layer for loans and their payment ledgers.

This module keeps loans and payments in a database so the web app can hand
the engine a loan and its full payment history on every request. It
defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).

Payments are append-only: the store can add and read them but offers no way
to change or remove one.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from loan_ledger.data_models import Loan, Payment
from loan_ledger.loan_types import LoanType

Base = declarative_base()

MONEY = Numeric(18, 6, asdecimal=True)


class LoanModel(Base):
    __tablename__ = "loans"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    loan_type = Column(String(32), nullable=False)
    principal = Column(MONEY, nullable=False)
    annual_interest_rate = Column(MONEY, nullable=False)
    term_months = Column(Integer, nullable=False, default=0)
    minimum_payment = Column(MONEY, nullable=True)
    start_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PaymentModel(Base):
    __tablename__ = "payments"
    # at most one payment per position in a loan's ledger
    __table_args__ = (UniqueConstraint("loan_id", "sequence", name="uq_payments_loan_sequence"),)

    id = Column(String(64), primary_key=True)
    loan_id = Column(String(64), ForeignKey("loans.id"), index=True, nullable=False)
    amount = Column(MONEY, nullable=False)
    payment_date = Column(Date, nullable=False)
    principal_amount = Column(MONEY, nullable=True)
    interest_amount = Column(MONEY, nullable=True)
    remaining_balance = Column(MONEY, nullable=True)
    is_extra_payment = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    # insertion order; several payments can share a created_at timestamp
    sequence = Column(Integer, nullable=False, default=0)


class LedgerStore:
    """Database-backed loan and payment store."""

    def __init__(self, url: str) -> None:
        engine_kwargs = {"future": True}
        if url.startswith("sqlite") and ":memory:" in url:
            # one shared connection, otherwise each session sees an empty database
            engine_kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)
        self._engine = create_engine(url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def add_loan(self, loan: Loan) -> Loan:
        row = LoanModel(
            id=loan.id,
            name=loan.name,
            loan_type=loan.loan_type.value,
            principal=loan.principal,
            annual_interest_rate=loan.annual_interest_rate,
            term_months=loan.term_months,
            minimum_payment=loan.minimum_payment,
            start_date=loan.start_date,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        return loan

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            return self._to_loan(row) if row else None

    def list_loans(self) -> List[Loan]:
        with self._session_factory() as session:
            rows: Iterable[LoanModel] = session.execute(
                select(LoanModel).order_by(LoanModel.created_at.asc())
            ).scalars()
            return [self._to_loan(row) for row in rows]

    def add_payment(self, payment: Payment) -> Payment:
        with self._session_factory() as session:
            count = session.scalar(
                select(func.count()).select_from(PaymentModel).where(PaymentModel.loan_id == payment.loan_id)
            )
            session.add(
                PaymentModel(
                    id=payment.id,
                    loan_id=payment.loan_id,
                    amount=payment.amount,
                    payment_date=payment.payment_date,
                    principal_amount=payment.principal_amount,
                    interest_amount=payment.interest_amount,
                    remaining_balance=payment.remaining_balance,
                    is_extra_payment=payment.is_extra_payment,
                    notes=payment.notes,
                    sequence=count,
                )
            )
            session.commit()
        return payment

    def list_payments(self, loan_id: str) -> List[Payment]:
        """Payments of one loan in the order they were recorded."""
        with self._session_factory() as session:
            rows: Iterable[PaymentModel] = session.execute(
                select(PaymentModel)
                .where(PaymentModel.loan_id == loan_id)
                .order_by(PaymentModel.sequence.asc())
            ).scalars()
            return [self._to_payment(row) for row in rows]

    @staticmethod
    def _to_loan(row: LoanModel) -> Loan:
        return Loan(
            id=row.id,
            principal=Decimal(row.principal),
            annual_interest_rate=Decimal(row.annual_interest_rate),
            term_months=row.term_months,
            start_date=row.start_date,
            minimum_payment=None if row.minimum_payment is None else Decimal(row.minimum_payment),
            name=row.name,
            loan_type=LoanType(row.loan_type),
        )

    @staticmethod
    def _to_payment(row: PaymentModel) -> Payment:
        def _dec(value):
            return None if value is None else Decimal(value)

        return Payment(
            id=row.id,
            loan_id=row.loan_id,
            amount=Decimal(row.amount),
            payment_date=row.payment_date,
            principal_amount=_dec(row.principal_amount),
            interest_amount=_dec(row.interest_amount),
            remaining_balance=_dec(row.remaining_balance),
            is_extra_payment=row.is_extra_payment,
            notes=row.notes,
        )


def create_store_from_env(url: str | None) -> LedgerStore:
    return LedgerStore(url or "sqlite:///loan_ledger.sqlite3")
