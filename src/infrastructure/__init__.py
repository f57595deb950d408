# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for external service integrations.

This package contains:
- Database connections and SQL stores (PostgreSQL)
- Notification channels and delivery (SMTP, Firebase)
- Background task processing (Dramatiq, APScheduler)
"""
