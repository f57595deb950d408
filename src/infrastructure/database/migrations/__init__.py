# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alembic migrations for the notification database.

Revisions live in versions/. Run them with ``alembic upgrade head`` from
the repository root.
"""
