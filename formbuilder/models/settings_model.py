from sqlalchemy import Column, Integer, String, Text, DateTime, func, Boolean
from formbuilder.config.database_config import Base
from formbuilder.constants.utils import SETTING_CATEGORIES, SETTING_TYPES


class Setting(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), nullable=False, unique=True, index=True)
    value = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default=SETTING_TYPES.STRING.value)
    description = Column(String(255), nullable=True)
    category = Column(String(20), nullable=False, default=SETTING_CATEGORIES.GENERAL.value)
    is_public = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
