from sqlalchemy import Column, Integer, String, Text, DateTime, func, ForeignKey, JSON, Boolean
from sqlalchemy.orm import relationship
from formbuilder.config.database_config import Base


class Form(Base):
    __tablename__ = "forms"

    id = Column(Integer, primary_key=True, autoincrement=True)

    created_by = Column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    fields = Column(JSON, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    allow_editing = Column(Boolean, nullable=False, default=True)
    custom_url = Column(String(50), nullable=True, unique=True, index=True)
    submission_count = Column(Integer, nullable=False, default=0)
    settings = Column(JSON, nullable=False, default=dict)
    analytics = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    creator = relationship("User", back_populates="forms")
    submissions = relationship("Submission", back_populates="form", passive_deletes="all")
