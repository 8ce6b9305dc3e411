from sqlalchemy import Column, Integer, String, Text, DateTime, func, ForeignKey, JSON, Numeric
from sqlalchemy.orm import relationship
from formbuilder.config.database_config import Base
from formbuilder.constants.utils import SUBMISSION_STATUS


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    unique_id = Column(String(32), nullable=False, unique=True, index=True)
    edit_code = Column(String(8), nullable=False)

    form_id = Column(
        Integer,
        ForeignKey("forms.id"),
        nullable=False,
        index=True,
    )

    data = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default=SUBMISSION_STATUS.PENDING.value, index=True)

    # Payment state, owned by the adapter named in payment_method
    payment_method = Column(String(20), nullable=True)
    payment_status = Column(String(20), nullable=True, index=True)
    payment_amount = Column(Numeric(12, 2), nullable=True)
    payment_currency = Column(String(3), nullable=True)
    payment_reference = Column(String(64), nullable=True, unique=True, index=True)
    payment_transaction_id = Column(String(64), nullable=True)
    payment_details = Column(JSON, nullable=True)
    payment_receipt = Column(String(255), nullable=True)
    payment_notes = Column(Text, nullable=True)
    payment_rejection_reason = Column(Text, nullable=True)
    payment_completed_at = Column(DateTime, nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=True)
    refund_transaction_id = Column(String(64), nullable=True)
    refunded_at = Column(DateTime, nullable=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)
    admin_notes = Column(Text, nullable=True)
    extra_metadata = Column("metadata", JSON, nullable=True)
    edit_history = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    form = relationship("Form", back_populates="submissions")
