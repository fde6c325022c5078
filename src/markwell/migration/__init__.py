"""Migration of legacy highlight markup to the highlight store."""

from markwell.migration.engine import MigrationEngine
from markwell.migration.legacy import (
    MIGRATED_ATTR,
    NEW_ID_ATTR,
    LegacyMarkupReader,
    TreeLegacyReader,
    has_class,
)
from markwell.migration.persistence import (
    InMemoryPersistence,
    JsonFilePersistence,
    PersistenceGateway,
    PrunablePersistence,
    normalize_url,
    state_key,
)
from markwell.migration.state import (
    MigrationPhase,
    MigrationResult,
    MigrationState,
    MigrationStatistics,
)

__all__ = [
    "MIGRATED_ATTR",
    "NEW_ID_ATTR",
    "InMemoryPersistence",
    "JsonFilePersistence",
    "LegacyMarkupReader",
    "MigrationEngine",
    "MigrationPhase",
    "MigrationResult",
    "MigrationState",
    "MigrationStatistics",
    "PersistenceGateway",
    "PrunablePersistence",
    "TreeLegacyReader",
    "has_class",
    "normalize_url",
    "state_key",
]
