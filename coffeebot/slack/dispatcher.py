"""
Routes the text of a /coffee command to the service that handles it
"""
import re
from typing import Iterable, Optional

from coffeebot.core.logging_config import get_logger
from coffeebot.migrations import MigrationContext, MigrationEngine, MigrationGate
from coffeebot.models import CommandContext, SlackResponse, SlashCommand
from coffeebot.services.backup_service import BackupService
from coffeebot.services.coffee_service import CoffeeService
from coffeebot.services.identity_service import IdentityService
from coffeebot.slack.responses import (
    MIGRATIONS_PENDING_TEXT,
    WRONG_COMMAND_TEXT,
    generic_failure,
    show_about,
    show_help,
)

NUMBER_PATTERN = re.compile(r"[+-]?\d+")


class CommandDispatcher:
    """Entry point for every slash command.

    `migrate` goes straight to the migration engine. Every other command
    first asks the gate, and does nothing while migrations are pending.
    """

    def __init__(
        self,
        gate: MigrationGate,
        migration_engine: MigrationEngine,
        identity: IdentityService,
        coffee: CoffeeService,
        backup: BackupService,
        slash_command: str = "/coffee",
        migration_allowed_users: Optional[Iterable[str]] = None,
        count_display_size: int = 5,
    ):
        self.logger = get_logger("coffeebot.slack.dispatcher")
        self.gate = gate
        self.migration_engine = migration_engine
        self.identity = identity
        self.coffee = coffee
        self.backup = backup
        self.slash_command = slash_command
        self.migration_allowed_users = frozenset(migration_allowed_users or ())
        self.count_display_size = count_display_size

    async def dispatch(self, command: SlashCommand) -> SlackResponse:
        if command.command != self.slash_command:
            self.logger.warning(f"Received unexpected slash command {command.command}")
            return SlackResponse.ephemeral(WRONG_COMMAND_TEXT)

        text = command.text.strip()
        self.logger.info(f"Command '{text}' from {command.user_id}:{command.user_name} on {command.team_id}")

        if text == "migrate":
            return await self.run_migrations(command)

        if await self.gate.is_migration_pending():
            return SlackResponse.ephemeral(MIGRATIONS_PENDING_TEXT)

        context = await self.identity.resolve(command)
        return await self._route(text, command, context)

    async def run_migrations(self, command: SlashCommand) -> SlackResponse:
        if self.migration_allowed_users and command.user_id not in self.migration_allowed_users:
            self.logger.warning(f"User {command.user_id}:{command.user_name} is not allowed to run migrations")
            return generic_failure()

        result = await self.migration_engine.run_pending_migrations(
            MigrationContext(
                user_id=command.user_id,
                user_name=command.user_name,
                team_id=command.team_id,
                team_domain=command.team_domain,
            )
        )
        return SlackResponse.ephemeral(result.message)

    async def _route(self, text: str, command: SlashCommand, context: CommandContext) -> SlackResponse:
        if text == "":
            return await self.coffee.add_coffee(context, 1)
        number = NUMBER_PATTERN.match(text)
        if number:
            # A leading count is enough, so "3 coffees" adds three
            return await self.coffee.add_coffee(context, int(number.group()))
        if text == "stomach-pump":
            return await self.coffee.add_coffee(context, -1)

        name, _, argument = text.partition(" ")
        argument = argument.strip()

        if name == "help" and not argument:
            return show_help(self.coffee.max_add, self.coffee.max_subtract, self.count_display_size)
        if name == "about" and not argument:
            return show_about(context.db_team_label)
        if name == "count" and not argument:
            return await self.coffee.show_count(context, limit=self.count_display_size)
        if name == "count-all" and not argument:
            return await self.coffee.show_count(context)
        if name == "stats" and not argument:
            return await self.coffee.show_stats(context)
        if name == "link":
            if argument:
                return await self.identity.link_user_by_code(context.db_abstract_user_id, argument)
            return await self.identity.get_link_code(context.db_abstract_user_id)
        if name == "auth" and argument:
            return await self.identity.make_admin(context, command, argument)
        if name == "teamlabel" and argument:
            return await self.identity.set_team_label(context, command, argument)

        if name in ("myinfo", "backup", "backup-all") and not argument:
            return await self._admin_command(name, command, context)

        return generic_failure()

    async def _admin_command(self, name: str, command: SlashCommand, context: CommandContext) -> SlackResponse:
        if not context.db_user_is_admin:
            self.logger.warning(f"Admin command {name} attempted by non admin user {context.db_user_id}")
            return generic_failure()

        if name == "myinfo":
            return self.identity.my_info(context, command)
        if name == "backup":
            return await self.backup.create_backup()
        return await self.backup.create_full_backup()
