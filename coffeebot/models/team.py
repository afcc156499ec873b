from sqlalchemy import (
    Column,
    DateTime,
    String,
)
from coffeebot.db.database import Base
from coffeebot.models.types import BigIntId


class Team(Base):
    __tablename__ = "team_v2"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    # Slack team id
    team_id = Column(String(50), unique=True, nullable=False)
    team_domain = Column(String(200), nullable=False)
    # Optional display name used in responses instead of "workspace members"
    label = Column(String(200))
