from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from coffeebot.db.database import Base
from coffeebot.models.types import BigIntId


class Drink(Base):
    __tablename__ = "drink_v2"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    abstract_user_id = Column(BigInteger, ForeignKey("abstract_user_v2.id"), nullable=False)
    user_id = Column(BigInteger, ForeignKey("user_v2.id"), nullable=False)
    drink = Column(String(20), default="coffee", server_default="coffee")
    # Source row in the flat coffee table, for drinks copied by the level 2 migration
    legacy_coffee_id = Column(BigInteger, unique=True)

    __table_args__ = (
        Index("drink_v2_idx_created_at", "created_at"),
        Index("drink_v2_idx_abstract_user_id", "abstract_user_id"),
    )
