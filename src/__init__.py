"""School platform notification core.

Admission control (priority classification, preference, frequency,
deduplication and quiet-hours gates), rule-driven event expansion,
multi-channel delivery and digest batching for a multi-tenant school
platform.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "0.1.0"
