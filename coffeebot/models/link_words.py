from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from coffeebot.db.database import Base


class LinkWords(Base):
    """Outstanding link code for an abstract user"""
    __tablename__ = "link_words_v2"

    abstract_user_id = Column(BigInteger, ForeignKey("abstract_user_v2.id"), primary_key=True, autoincrement=False)
    words = Column(String(200))
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("link_words_v2_idx_words", "words"),
    )
