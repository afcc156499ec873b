"""Teams, abstract users, users and drinks

Level: 2
Revises: 1
Create Date: 2021-03-14 00:00:00.000000

Moves the flat coffee table into per-team users linked to abstract users,
so a person's drinks can follow them across workspaces. Every legacy row is
assumed to belong to the workspace the migration is run from.
"""
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection

from coffeebot.migrations.operations import CreateIndex, CreateTable, DataTransform, MigrationContext, MigrationStep
from coffeebot.models.types import BigIntId


metadata = sa.MetaData()

abstract_user = sa.Table(
    "abstract_user_v2",
    metadata,
    sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
)

team = sa.Table(
    "team_v2",
    metadata,
    sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("team_id", sa.String(length=50), nullable=False),
    sa.Column("team_domain", sa.String(length=200), nullable=False),
    sa.Column("label", sa.String(length=200), nullable=True),
    sa.UniqueConstraint("team_id", name="team_v2_team_id_unique"),
)

user = sa.Table(
    "user_v2",
    metadata,
    sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("user_id", sa.String(length=50), nullable=False),
    sa.Column("user_name", sa.String(length=200), nullable=False),
    sa.Column("label", sa.String(length=200), nullable=True),
    sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("team_id", sa.BigInteger(), sa.ForeignKey("team_v2.id", name="user_v2_user_fk_team"), nullable=False),
    sa.Column(
        "abstract_user_id",
        sa.BigInteger(),
        sa.ForeignKey("abstract_user_v2.id", name="user_v2_user_fk_abstract_user"),
        nullable=False,
    ),
    sa.UniqueConstraint("team_id", "user_id", name="user_v2_team_id_user_id_unique"),
    sa.Index("user_v2_idx_user_id_team_id", "user_id", "team_id"),
)

drink = sa.Table(
    "drink_v2",
    metadata,
    sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column(
        "abstract_user_id",
        sa.BigInteger(),
        sa.ForeignKey("abstract_user_v2.id", name="drink_v2_user_fk_abstract_user"),
        nullable=False,
    ),
    sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("user_v2.id", name="drink_v2_user_fk_user"), nullable=False),
    sa.Column("drink", sa.String(length=20), server_default="coffee"),
    sa.Column("legacy_coffee_id", sa.BigInteger(), nullable=True),
    sa.UniqueConstraint("legacy_coffee_id", name="drink_v2_legacy_coffee_id_unique"),
    sa.Index("drink_v2_idx_created_at", "created_at"),
    sa.Index("drink_v2_idx_abstract_user_id", "abstract_user_id"),
)

link_words = sa.Table(
    "link_words_v2",
    metadata,
    sa.Column(
        "abstract_user_id",
        sa.BigInteger(),
        sa.ForeignKey("abstract_user_v2.id", name="link_words_v2_abstract_user_fk_abstract_user"),
        primary_key=True,
        autoincrement=False,
    ),
    sa.Column("words", sa.String(length=200), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Index("link_words_v2_idx_words", "words"),
)

# Shape of the level 1 table, as read by the copy below. Never created here.
legacy_metadata = sa.MetaData()

legacy_coffee = sa.Table(
    "coffee",
    legacy_metadata,
    sa.Column("id", sa.BigInteger(), primary_key=True),
    sa.Column("user_id", sa.String(length=50)),
    sa.Column("user_name", sa.String(length=200)),
    sa.Column("created_at", sa.DateTime(timezone=True)),
)

legacy_coffee_user_id_index = sa.Index("coffee_idx_user_id", legacy_coffee.c.user_id)


async def _legacy_rows_exist(conn: AsyncConnection) -> bool:
    result = await conn.execute(sa.select(sa.exists().select_from(legacy_coffee)))
    return bool(result.scalar())


async def _team_db_id(conn: AsyncConnection, slack_team_id: str):
    result = await conn.execute(sa.select(team.c.id).where(team.c.team_id == slack_team_id))
    return result.scalar()


async def copy_team(conn: AsyncConnection, context: MigrationContext, now: datetime) -> None:
    """Create the team record for the workspace running the migration"""
    if not context.team_id:
        if await _legacy_rows_exist(conn):
            raise ValueError("A team id is required to migrate existing coffee rows")
        return

    if await _team_db_id(conn, context.team_id) is None:
        await conn.execute(
            sa.insert(team).values(
                created_at=now,
                team_id=context.team_id,
                team_domain=context.team_domain or "",
            )
        )


async def copy_users(conn: AsyncConnection, context: MigrationContext, now: datetime) -> None:
    """One abstract user and one team user per distinct legacy slack user"""
    if not context.team_id:
        return
    db_team_id = await _team_db_id(conn, context.team_id)

    already_copied = sa.exists().where(
        sa.and_(user.c.team_id == db_team_id, user.c.user_id == legacy_coffee.c.user_id)
    )
    # A user renamed in slack appears under several names; keep one row per id
    distinct_users = await conn.execute(
        sa.select(legacy_coffee.c.user_id, sa.func.max(legacy_coffee.c.user_name).label("user_name"))
        .where(~already_copied)
        .group_by(legacy_coffee.c.user_id)
        .order_by(legacy_coffee.c.user_id)
    )

    for row in distinct_users.all():
        inserted = await conn.execute(
            sa.insert(abstract_user).values(created_at=now).returning(abstract_user.c.id)
        )
        db_abstract_user_id = inserted.scalar_one()
        await conn.execute(
            sa.insert(user).values(
                created_at=now,
                user_id=row.user_id,
                user_name=row.user_name or row.user_id,
                team_id=db_team_id,
                abstract_user_id=db_abstract_user_id,
            )
        )


async def copy_drinks(conn: AsyncConnection, context: MigrationContext, now: datetime) -> None:
    """Copy every legacy coffee that has no drink yet"""
    if not context.team_id:
        return
    db_team_id = await _team_db_id(conn, context.team_id)

    already_copied = sa.exists().where(drink.c.legacy_coffee_id == legacy_coffee.c.id)
    source = (
        sa.select(
            legacy_coffee.c.created_at,
            user.c.abstract_user_id,
            user.c.id.label("db_user_id"),
            legacy_coffee.c.id.label("legacy_coffee_id"),
        )
        .select_from(
            legacy_coffee.join(
                user,
                sa.and_(user.c.user_id == legacy_coffee.c.user_id, user.c.team_id == db_team_id),
            )
        )
        .where(~already_copied)
        .order_by(legacy_coffee.c.id)
    )
    await conn.execute(
        sa.insert(drink).from_select(
            ["created_at", "abstract_user_id", "user_id", "legacy_coffee_id"],
            source,
        )
    )


step = MigrationStep(
    target_level=2,
    description="Normalize coffee rows into teams, abstract users, users and drinks",
    operations=(
        CreateTable(abstract_user),
        CreateTable(team),
        CreateTable(user),
        CreateTable(drink),
        CreateTable(link_words),
        CreateIndex(legacy_coffee_user_id_index),
        DataTransform("copy workspace team", copy_team),
        DataTransform("copy distinct coffee drinkers", copy_users),
        DataTransform("copy coffees into drinks", copy_drinks),
    ),
)
