"""
Versioned, transactional schema migrations
"""
from .errors import MigrationError, ConflictError, StepExecutionError, PreconditionMismatch
from .operations import (
    CreateIndex,
    CreateTable,
    DataTransform,
    MigrationContext,
    MigrationOperation,
    MigrationStep,
    OperationKind,
)
from .ledger import MigrationLedger, MigrationLedgerEntry
from .registry import MigrationRegistry, default_registry
from .engine import MigrationEngine, MigrationResult, MigrationStatus
from .gate import MigrationGate

__all__ = [
    "MigrationError",
    "ConflictError",
    "StepExecutionError",
    "PreconditionMismatch",
    "CreateIndex",
    "CreateTable",
    "DataTransform",
    "MigrationContext",
    "MigrationOperation",
    "MigrationStep",
    "OperationKind",
    "MigrationLedger",
    "MigrationLedgerEntry",
    "MigrationRegistry",
    "default_registry",
    "MigrationEngine",
    "MigrationResult",
    "MigrationStatus",
    "MigrationGate",
]
