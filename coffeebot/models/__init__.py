from .legacy import Coffee, Backup
from .team import Team
from .user import AbstractUser, User
from .drink import Drink
from .link_words import LinkWords
from .slack import SlashCommand, SlackResponse, CommandContext

__all__ = ["Coffee", "Backup", "Team", "AbstractUser", "User", "Drink", "LinkWords", "SlashCommand", "SlackResponse", "CommandContext"]
