from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    String,
    Text,
)
from coffeebot.db.database import Base
from coffeebot.models.types import BigIntId


class Coffee(Base):
    """Flat per-coffee table used before the level 2 normalization"""
    __tablename__ = "coffee"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=False)
    user_name = Column(String(200))
    created_at = Column(DateTime(timezone=True), nullable=False)


class Backup(Base):
    __tablename__ = "backups"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    backup_until = Column(DateTime(timezone=True), nullable=False)
    successful = Column(Boolean, nullable=False)
    message = Column(Text)
