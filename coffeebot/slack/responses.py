"""
Canned responses for the /coffee command
"""
from typing import Optional
from coffeebot.models.slack import SlackResponse

GENERIC_FAILURE_TEXT = "I'm afraid I don't understand your command. Take another sip and try again."

MIGRATIONS_PENDING_TEXT = "Migrations must be run before continuing"

WRONG_COMMAND_TEXT = "Something has gone horribly wrong"


def generic_failure() -> SlackResponse:
    return SlackResponse.ephemeral(GENERIC_FAILURE_TEXT)


def team_label_or_generic_plural(db_team_label: Optional[str]) -> str:
    return db_team_label or "workspace members"


def show_help(max_add: int, max_subtract: int, count_display_size: int) -> SlackResponse:
    return SlackResponse.ephemeral(
        "Ohai, and welcome to coffeebot. Coffeebot counts the coffees consumed by teams because why not.\n"
        "\n"
        "The most important commands are:\n"
        "\n"
        "- `/coffee help` - You found this already\n"
        "- `/coffee` - add a single coffee\n"
        f"- `/coffee <number>` - add multiple coffees, max {max_add}; but try to use /coffee when you get a coffee instead\n"
        "- `/coffee stomach-pump` - subtract a single coffee\n"
        f"- `/coffee -<number>` - subtract multiple coffees, max {max_subtract}; but try not to add coffees you're not drinking\n"
        f"- `/coffee count` - show the total number of coffees, and highest {count_display_size} coffee consumers\n"
        "- `/coffee count-all` - show the total number of coffees, and _all_ coffee consumers\n"
        "- `/coffee stats` - see summary data from all coffees recorded since the beginning of the bot\n"
        "- `/coffee link` - get a code to link your user between workspaces, so you can log coffees from any of them\n"
        "- `/coffee link <link code>` - use a link code to link your account between workspaces\n"
        "- `/coffee about` - about coffeebot"
    )


def show_about(db_team_label: Optional[str]) -> SlackResponse:
    return SlackResponse.ephemeral(
        "CoffeeBot is a helpful slack bot dedicated to capturing the coffee consumption habits of "
        f"{team_label_or_generic_plural(db_team_label)}.\n"
        "It was written the night before international coffee day 2020 as something between "
        "a joke and an experiment. Somehow, it has continued to be used since then.\n"
        "It was created based on the idea that it would be cool to know how much coffee "
        "team members drink. I hope you enjoy it."
    )
