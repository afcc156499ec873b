"""
Recording and tallying drinks
"""
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from coffeebot.core.clock import Clock
from coffeebot.core.logging_config import get_logger
from coffeebot.models import CommandContext, Drink, SlackResponse, User
from coffeebot.models.slack import mrkdwn_section
from coffeebot.slack.responses import team_label_or_generic_plural


class CoffeeService:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Clock,
        max_add: int = 5,
        max_subtract: int = 2,
    ):
        self.logger = get_logger("coffeebot.services.coffee")
        self.session_factory = session_factory
        self.clock = clock
        self.max_add = max_add
        self.max_subtract = max_subtract

    async def add_coffee(self, context: CommandContext, inc: int) -> SlackResponse:
        """Add `inc` coffees, or remove today's most recent ones when negative"""
        if inc > self.max_add:
            return SlackResponse.ephemeral(f"You can't add more than {self.max_add} coffees at a time")
        if -inc > self.max_subtract:
            return SlackResponse.ephemeral(f"You can't remove more than {self.max_subtract} coffees at a time")

        now = self.clock.now()
        start_of_today, start_of_tomorrow = self.clock.today_bounds()

        async with self.session_factory() as session:
            async with session.begin():
                if inc > 0:
                    session.add_all([
                        Drink(
                            created_at=now,
                            abstract_user_id=context.db_abstract_user_id,
                            user_id=context.db_user_id,
                            drink="coffee",
                        )
                        for _ in range(inc)
                    ])
                elif inc < 0:
                    recent = aliased(Drink)
                    most_recent_today = (
                        select(recent.id)
                        .where(
                            recent.abstract_user_id == context.db_abstract_user_id,
                            recent.created_at > start_of_today,
                            recent.created_at < start_of_tomorrow,
                        )
                        .order_by(recent.id.desc())
                        .limit(-inc)
                    )
                    await session.execute(delete(Drink).where(Drink.id.in_(most_recent_today)))

            team_count = await self._count_team_drinks(session, context.db_team_id, start_of_today, start_of_tomorrow)
            user_result = await session.execute(
                select(func.count(Drink.id)).where(
                    Drink.abstract_user_id == context.db_abstract_user_id,
                    Drink.created_at > start_of_today,
                    Drink.created_at < start_of_tomorrow,
                )
            )
            user_count = user_result.scalar_one()

        return SlackResponse.ephemeral(
            f"That's coffee number {user_count} for you today, and number {team_count} "
            f"for {team_label_or_generic_plural(context.db_team_label)} today"
        )

    async def show_count(self, context: CommandContext, limit: Optional[int] = None) -> SlackResponse:
        """Today's total for the team and the per-user leaderboard"""
        start_of_today, start_of_tomorrow = self.clock.today_bounds()

        async with self.session_factory() as session:
            total = await self._count_team_drinks(session, context.db_team_id, start_of_today, start_of_tomorrow)

            drink_count = func.count(Drink.id).label("drink_count")
            result = await session.execute(
                select(User.user_name, drink_count)
                .join(Drink, Drink.abstract_user_id == User.abstract_user_id)
                .where(
                    User.team_id == context.db_team_id,
                    Drink.created_at > start_of_today,
                    Drink.created_at < start_of_tomorrow,
                )
                .group_by(User.user_name)
                .order_by(desc("drink_count"), User.user_name)
            )
            rows = result.all()

        if limit:
            rows = rows[:limit]

        blocks = [
            mrkdwn_section(
                f"*Today*, {team_label_or_generic_plural(context.db_team_label)} have consumed {total} coffees"
            )
        ]
        if rows:
            blocks.append(mrkdwn_section(
                "\n".join(f"- _{row.user_name}_ has consumed {row.drink_count} coffees" for row in rows)
            ))
        return SlackResponse.in_channel(blocks=blocks)

    async def show_stats(self, context: CommandContext) -> SlackResponse:
        """All time totals and per-user daily averages"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(User.user_name, Drink.created_at)
                .join(Drink, Drink.abstract_user_id == User.abstract_user_id)
                .where(User.team_id == context.db_team_id)
            )
            rows = result.all()

        per_user_days: Dict[str, Dict[date, int]] = defaultdict(lambda: defaultdict(int))
        for row in rows:
            per_user_days[row.user_name][self._local_date(row.created_at)] += 1

        summaries = []
        for user_name, days in per_user_days.items():
            total = sum(days.values())
            summaries.append((user_name, len(days), total, total / len(days)))
        summaries.sort(key=lambda summary: (-summary[3], summary[0]))

        blocks: List[dict] = [
            mrkdwn_section(
                f"*Since CoffeeBot began its glorious existence*, "
                f"{team_label_or_generic_plural(context.db_team_label)} have consumed {len(rows)} coffees"
            )
        ]
        if summaries:
            blocks.append(mrkdwn_section("\n".join(
                f"- _{user_name}_ has averaged {average:.1f} coffees per day across {reporting_days} days, "
                f"for a total of {total} coffees"
                for user_name, reporting_days, total, average in summaries
            )))
        return SlackResponse.in_channel(blocks=blocks)

    def _local_date(self, created_at: datetime) -> date:
        return self.clock.localize(created_at).date()

    @staticmethod
    async def _count_team_drinks(session: AsyncSession, db_team_id: int, start: datetime, end: datetime) -> int:
        # Drinks follow the abstract user, so linked accounts count in every team
        result = await session.execute(
            select(func.count(Drink.id))
            .select_from(User)
            .join(Drink, Drink.abstract_user_id == User.abstract_user_id)
            .where(
                User.team_id == db_team_id,
                Drink.created_at > start,
                Drink.created_at < end,
            )
        )
        return result.scalar_one()
