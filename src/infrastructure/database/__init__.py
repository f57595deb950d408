# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the notification database.

This package provides SQLAlchemy async database connections and the SQL
implementations of the notification stores:
- SqlNotificationStore: notification log, frequency counts, dedup lookups
- SqlPreferenceStore: per-user preferences and digest subscribers
- SqlRuleStore: school notification rules
- SqlRecipientDirectory: recipient contact details

Example:
    from src.infrastructure.database import (
        init_database,
        get_sessionmaker,
        SqlNotificationStore,
    )

    await init_database(settings)
    store = SqlNotificationStore(get_sessionmaker())
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    clear_worker_database,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    get_worker_sessionmaker,
    init_database,
)
from src.infrastructure.database.repositories import (
    SqlNotificationStore,
    SqlPreferenceStore,
    SqlRecipientDirectory,
    SqlRuleStore,
)

__all__ = [
    # Connection
    "DatabaseError",
    "check_database_connection",
    "clear_worker_database",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "get_worker_sessionmaker",
    "init_database",
    # Repositories
    "SqlNotificationStore",
    "SqlPreferenceStore",
    "SqlRecipientDirectory",
    "SqlRuleStore",
]
