# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for the notification system.

This package contains the decision logic and shared configuration:
- config: Application configuration and settings
- notifications: Classification, admission gates and rule evaluation
"""
