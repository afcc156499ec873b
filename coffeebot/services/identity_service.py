"""
Teams, users, cross-workspace linking and admin flags
"""
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coffeebot.core.clock import Clock
from coffeebot.core.logging_config import get_logger
from coffeebot.models import AbstractUser, CommandContext, Drink, LinkWords, SlackResponse, SlashCommand, Team, User
from coffeebot.services.wordlist import get_words
from coffeebot.slack.responses import GENERIC_FAILURE_TEXT, generic_failure


class IdentityService:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Clock,
        admin_key: Optional[str] = None,
        link_code_words: int = 4,
        link_code_ttl_hours: int = 24,
    ):
        self.logger = get_logger("coffeebot.services.identity")
        self.session_factory = session_factory
        self.clock = clock
        self.admin_key = admin_key
        self.link_code_words = link_code_words
        self.link_code_ttl = timedelta(hours=link_code_ttl_hours)

    async def resolve(self, command: SlashCommand) -> CommandContext:
        """Database identities for the caller, created on first use"""
        team = await self.get_or_create_team(command.team_id, command.team_domain)
        user = await self.get_or_create_user(command.user_id, command.user_name, team.id)
        return CommandContext(
            db_team_id=team.id,
            db_team_label=team.label,
            db_abstract_user_id=user.abstract_user_id,
            db_user_id=user.id,
            db_user_is_admin=user.is_admin,
        )

    async def get_or_create_team(self, team_id: str, team_domain: str) -> Team:
        """Create a team record if one doesn't already exist for the slack team"""
        async with self.session_factory() as session:
            team = await self._find_team(session, team_id)
            if team is not None:
                return team

            team = Team(created_at=self.clock.now(), team_id=team_id, team_domain=team_domain or "")
            session.add(team)
            try:
                await session.commit()
                self.logger.info(f"Created team {team.id} for {team_id}:{team_domain}")
                return team
            except IntegrityError:
                # Another request created it first
                await session.rollback()
                return await self._find_team(session, team_id)

    async def get_or_create_user(self, user_id: str, user_name: str, db_team_id: int) -> User:
        """Return the user for this team, creating it and its abstract user if needed.

        A changed slack display name is written back to the record.
        """
        async with self.session_factory() as session:
            user = await self._find_user(session, user_id, db_team_id)
            if user is not None:
                if user.user_name != user_name:
                    user.user_name = user_name
                    await session.commit()
                return user

            now = self.clock.now()
            abstract_user = AbstractUser(created_at=now)
            session.add(abstract_user)
            await session.flush()

            user = User(
                created_at=now,
                user_id=user_id,
                user_name=user_name,
                team_id=db_team_id,
                abstract_user_id=abstract_user.id,
                is_admin=False,
            )
            session.add(user)
            try:
                await session.commit()
                return user
            except IntegrityError:
                await session.rollback()
                return await self._find_user(session, user_id, db_team_id)

    async def get_link_code(self, db_abstract_user_id: int) -> SlackResponse:
        """Issue a new link code, replacing any outstanding one"""
        words = get_words(self.link_code_words)
        async with self.session_factory() as session:
            async with session.begin():
                await session.merge(
                    LinkWords(abstract_user_id=db_abstract_user_id, words=words, created_at=self.clock.now())
                )
        return SlackResponse.ephemeral(
            f"Your link code is {words}. To link another workspace enter /coffee link {words}"
        )

    async def link_user_by_code(self, db_abstract_user_id: int, words: str) -> SlackResponse:
        """Move the caller's users and drinks onto the abstract user owning `words`"""
        words = words.strip()
        cutoff = self.clock.now() - self.link_code_ttl

        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(LinkWords.abstract_user_id).where(
                        LinkWords.words == words,
                        LinkWords.created_at > cutoff,
                    )
                )
                target_abstract_user_id = result.scalars().first()

                # Consumed, expired and unknown codes are all deleted
                await session.execute(delete(LinkWords).where(LinkWords.words == words))

                if target_abstract_user_id is None:
                    return SlackResponse.ephemeral(
                        f"The link code {words} could not be found or is too old. Use /coffee link to get a new link code"
                    )

                if target_abstract_user_id == db_abstract_user_id:
                    return SlackResponse.ephemeral("Your slack user is already linked to that code")

                await session.execute(
                    update(Drink)
                    .where(Drink.abstract_user_id == db_abstract_user_id)
                    .values(abstract_user_id=target_abstract_user_id)
                )
                await session.execute(
                    update(User)
                    .where(User.abstract_user_id == db_abstract_user_id)
                    .values(abstract_user_id=target_abstract_user_id)
                )
                await session.execute(
                    delete(LinkWords).where(LinkWords.abstract_user_id == db_abstract_user_id)
                )

        self.logger.info(f"Linked abstract user {db_abstract_user_id} into {target_abstract_user_id}")
        return SlackResponse.ephemeral("Your slack user has been linked successfully")

    async def make_admin(self, context: CommandContext, command: SlashCommand, identifier_key: str) -> SlackResponse:
        """Set the caller as admin when the admin key matches.

        Every outcome answers with the generic failure text so the command
        can't be probed; success adds a wink.
        """
        who = f"{context.db_user_id}:{command.user_id}:{command.user_name}"
        if not self.admin_key:
            self.logger.warning(f"Attempt to identify as admin without ADMIN_KEY set: {who}")
            return generic_failure()

        if identifier_key.strip() != self.admin_key:
            self.logger.warning(f"Failed attempt to identify as admin: {who}")
            return generic_failure()

        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(User)
                    .where(User.id == context.db_user_id, User.is_admin == False)  # noqa: E712
                    .values(is_admin=True)
                )

        if result.rowcount == 0:
            self.logger.info(f"Failed to identify as admin; may already be admin? {who} isAdmin {context.db_user_is_admin}")
            return generic_failure()

        self.logger.info(f"Identified as admin: {who}")
        return SlackResponse.ephemeral(f"{GENERIC_FAILURE_TEXT} ;)")

    async def set_team_label(self, context: CommandContext, command: SlashCommand, team_label: str) -> SlackResponse:
        """Label used in place of "workspace members". Admins only."""
        if not context.db_user_is_admin:
            self.logger.warning(f"set_team_label called by non admin user {context.db_user_id}")
            return generic_failure()

        team_label = team_label.strip()
        self.logger.info(
            f"User setting team label. User: {context.db_user_id}:{command.user_id}:{command.user_name} "
            f"TeamId: {context.db_team_id} Label {team_label}"
        )
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(Team).where(Team.id == context.db_team_id).values(label=team_label)
                )
        return SlackResponse.in_channel(
            text=f"The workspace team name has been set to {team_label} by {command.user_name}"
        )

    @staticmethod
    def my_info(context: CommandContext, command: SlashCommand) -> SlackResponse:
        return SlackResponse.ephemeral(
            f"You are on team {context.db_team_id}:{command.team_id}:{command.team_domain}:{context.db_team_label}\n"
            f"user {context.db_abstract_user_id}:{context.db_user_id}:{command.user_id}:{command.user_name}. "
            f"Your is_admin value is {context.db_user_is_admin}"
        )

    @staticmethod
    async def _find_team(session: AsyncSession, team_id: str) -> Optional[Team]:
        result = await session.execute(select(Team).where(Team.team_id == team_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def _find_user(session: AsyncSession, user_id: str, db_team_id: int) -> Optional[User]:
        result = await session.execute(
            select(User).where(User.user_id == user_id, User.team_id == db_team_id)
        )
        return result.scalar_one_or_none()
