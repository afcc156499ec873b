from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    false,
)
from coffeebot.db.database import Base
from coffeebot.models.types import BigIntId


class AbstractUser(Base):
    """Identity shared by every slack user linked across workspaces"""
    __tablename__ = "abstract_user_v2"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class User(Base):
    """A slack user within one team"""
    __tablename__ = "user_v2"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    user_id = Column(String(50), nullable=False)
    user_name = Column(String(200), nullable=False)
    label = Column(String(200))
    is_admin = Column(Boolean, nullable=False, default=False, server_default=false())
    team_id = Column(BigInteger, ForeignKey("team_v2.id"), nullable=False)
    abstract_user_id = Column(BigInteger, ForeignKey("abstract_user_v2.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="user_v2_team_id_user_id_unique"),
        Index("user_v2_idx_user_id_team_id", "user_id", "team_id"),
    )
