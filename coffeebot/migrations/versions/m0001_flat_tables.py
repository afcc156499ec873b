"""Flat coffee table and backup log

Level: 1
Create Date: 2020-10-01 00:00:00.000000

"""
import sqlalchemy as sa

from coffeebot.migrations.operations import CreateTable, MigrationStep
from coffeebot.models.types import BigIntId


metadata = sa.MetaData()

coffee = sa.Table(
    "coffee",
    metadata,
    sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(length=50), nullable=False),
    sa.Column("user_name", sa.String(length=200), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
)

backups = sa.Table(
    "backups",
    metadata,
    sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("backup_until", sa.DateTime(timezone=True), nullable=False),
    sa.Column("successful", sa.Boolean(), nullable=False),
    sa.Column("message", sa.Text(), nullable=True),
)


step = MigrationStep(
    target_level=1,
    description="Create flat coffee table and backup log",
    operations=(
        CreateTable(coffee),
        CreateTable(backups),
    ),
)
