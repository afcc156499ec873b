"""Tests for teams, users, account linking and admin commands."""

import re

import pytest
from sqlalchemy import func, select

from coffeebot.models import AbstractUser, LinkWords, Team, User
from coffeebot.services import IdentityService
from coffeebot.slack.responses import GENERIC_FAILURE_TEXT

LINK_CODE = re.compile(r"Your link code is ([a-z-]+)\.")


def link_code(response) -> str:
    match = LINK_CODE.search(response.text)
    assert match, response.text
    return match.group(1)


async def count(session_factory, model) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestResolve:
    """Teams and users are created on first use."""

    @pytest.mark.asyncio
    async def test_first_command_creates_team_and_user(self, migrated, identity, session_factory, make_command):
        context = await identity.resolve(make_command())

        assert context.db_team_label is None
        assert context.db_user_is_admin is False
        assert await count(session_factory, Team) == 1
        assert await count(session_factory, User) == 1
        assert await count(session_factory, AbstractUser) == 1

    @pytest.mark.asyncio
    async def test_repeat_commands_reuse_records(self, migrated, identity, session_factory, make_command):
        first = await identity.resolve(make_command())
        second = await identity.resolve(make_command())

        assert first == second
        assert await count(session_factory, User) == 1

    @pytest.mark.asyncio
    async def test_same_slack_user_in_two_teams_is_two_users(self, migrated, identity, make_command):
        first = await identity.resolve(make_command(team_id="T0001"))
        second = await identity.resolve(make_command(team_id="T0002", team_domain="brewers"))

        assert first.db_team_id != second.db_team_id
        assert first.db_abstract_user_id != second.db_abstract_user_id

    @pytest.mark.asyncio
    async def test_renamed_slack_user_is_written_back(self, migrated, identity, session_factory, make_command):
        context = await identity.resolve(make_command(user_name="alice"))
        await identity.resolve(make_command(user_name="alice.b"))

        async with session_factory() as session:
            user = await session.get(User, context.db_user_id)
        assert user.user_name == "alice.b"


class TestLinking:
    """Link codes move a user's drinks onto another abstract user."""

    @pytest.mark.asyncio
    async def test_link_code_has_configured_word_count(self, migrated, identity, make_command):
        context = await identity.resolve(make_command())

        response = await identity.get_link_code(context.db_abstract_user_id)

        assert len(link_code(response).split("-")) == 4
        assert "/coffee link" in response.text

    @pytest.mark.asyncio
    async def test_new_code_replaces_old(self, migrated, identity, session_factory, make_command):
        context = await identity.resolve(make_command())

        await identity.get_link_code(context.db_abstract_user_id)
        second = link_code(await identity.get_link_code(context.db_abstract_user_id))

        async with session_factory() as session:
            rows = (await session.execute(select(LinkWords))).scalars().all()
        assert [row.words for row in rows] == [second]

    @pytest.mark.asyncio
    async def test_link_moves_users_to_code_owner(self, migrated, identity, make_command):
        owner = await identity.resolve(make_command())
        other = await identity.resolve(make_command(user_id="U7777", team_id="T0002", team_domain="brewers"))
        words = link_code(await identity.get_link_code(owner.db_abstract_user_id))

        response = await identity.link_user_by_code(other.db_abstract_user_id, words)

        assert response.text == "Your slack user has been linked successfully"
        relinked = await identity.resolve(make_command(user_id="U7777", team_id="T0002", team_domain="brewers"))
        assert relinked.db_abstract_user_id == owner.db_abstract_user_id

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, migrated, identity, make_command):
        owner = await identity.resolve(make_command())
        other = await identity.resolve(make_command(user_id="U7777", team_id="T0002"))
        words = link_code(await identity.get_link_code(owner.db_abstract_user_id))
        await identity.link_user_by_code(other.db_abstract_user_id, words)

        response = await identity.link_user_by_code(other.db_abstract_user_id, words)

        assert "could not be found or is too old" in response.text

    @pytest.mark.asyncio
    async def test_expired_code_is_rejected_and_deleted(self, migrated, identity, session_factory, clock, make_command):
        owner = await identity.resolve(make_command())
        other = await identity.resolve(make_command(user_id="U7777", team_id="T0002"))
        words = link_code(await identity.get_link_code(owner.db_abstract_user_id))
        clock.advance(hours=25)

        response = await identity.link_user_by_code(other.db_abstract_user_id, words)

        assert response.text == (
            f"The link code {words} could not be found or is too old. Use /coffee link to get a new link code"
        )
        assert await count(session_factory, LinkWords) == 0

    @pytest.mark.asyncio
    async def test_own_code(self, migrated, identity, make_command):
        owner = await identity.resolve(make_command())
        words = link_code(await identity.get_link_code(owner.db_abstract_user_id))

        response = await identity.link_user_by_code(owner.db_abstract_user_id, words)

        assert response.text == "Your slack user is already linked to that code"


class TestAdmin:
    """Admin key and admin only commands."""

    @pytest.mark.asyncio
    async def test_wrong_key(self, migrated, identity, make_command):
        command = make_command("auth nope")
        context = await identity.resolve(command)

        response = await identity.make_admin(context, command, "nope")

        assert response.text == GENERIC_FAILURE_TEXT
        assert (await identity.resolve(command)).db_user_is_admin is False

    @pytest.mark.asyncio
    async def test_right_key_winks(self, migrated, identity, make_command):
        command = make_command("auth sesame")
        context = await identity.resolve(command)

        response = await identity.make_admin(context, command, "sesame")

        assert response.text == f"{GENERIC_FAILURE_TEXT} ;)"
        assert (await identity.resolve(command)).db_user_is_admin is True

    @pytest.mark.asyncio
    async def test_already_admin_gets_no_wink(self, migrated, identity, make_command):
        command = make_command("auth sesame")
        context = await identity.resolve(command)
        await identity.make_admin(context, command, "sesame")

        response = await identity.make_admin(context, command, "sesame")

        assert response.text == GENERIC_FAILURE_TEXT

    @pytest.mark.asyncio
    async def test_no_admin_key_configured(self, migrated, session_factory, clock, make_command):
        keyless = IdentityService(session_factory, clock, admin_key=None)
        command = make_command("auth anything")
        context = await keyless.resolve(command)

        response = await keyless.make_admin(context, command, "anything")

        assert response.text == GENERIC_FAILURE_TEXT

    @pytest.mark.asyncio
    async def test_team_label_needs_admin(self, migrated, identity, make_command):
        command = make_command("teamlabel the roasters")
        context = await identity.resolve(command)

        response = await identity.set_team_label(context, command, "the roasters")

        assert response.text == GENERIC_FAILURE_TEXT
        assert (await identity.resolve(command)).db_team_label is None

    @pytest.mark.asyncio
    async def test_admin_sets_team_label(self, migrated, identity, make_command):
        command = make_command("teamlabel the roasters")
        context = await identity.resolve(command)
        await identity.make_admin(context, command, "sesame")
        context = await identity.resolve(command)

        response = await identity.set_team_label(context, command, "the roasters")

        assert response.response_type == "in_channel"
        assert response.text == "The workspace team name has been set to the roasters by alice"
        assert (await identity.resolve(command)).db_team_label == "the roasters"
