from sqlalchemy import Column, Integer, String, Text, DateTime, func, ForeignKey, JSON, Numeric, UniqueConstraint
from formbuilder.config.database_config import Base


class Payment(Base):
    """Audit record of one external payment; the submission row stays authoritative."""

    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("payment_method", "payment_id", name="uq_payments_method_reference"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    payment_method = Column(String(20), nullable=False)
    payment_id = Column(String(64), nullable=False)
    amount = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), nullable=True)
    status = Column(String(20), nullable=False)
    payment_metadata = Column("metadata", JSON, nullable=True)
    receipt_url = Column(String(500), nullable=True)
    refunded_amount = Column(Numeric(12, 2), nullable=True)
    failure_reason = Column(Text, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
