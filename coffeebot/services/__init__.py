from .coffee_service import CoffeeService
from .identity_service import IdentityService
from .backup_service import BackupService, BackupMode
from .backup_scheduler import BackupScheduler

__all__ = ["CoffeeService", "IdentityService", "BackupService", "BackupMode", "BackupScheduler"]
