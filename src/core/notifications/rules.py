# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rule-based expansion of school events into notification candidates.

Schools configure rules of the form "when event X happens and the event
metadata satisfies these conditions, notify the user with this title and
message". The evaluator fetches the active rules for an event, keeps the
ones whose conditions match, and renders their templates.

Templates use ``{{key}}`` placeholders filled from event metadata. A key
that is missing or None stays in the output verbatim.
"""

import logging
import re
from typing import Any, Mapping

from src.core.notifications.classifier import PriorityClassifier
from src.core.notifications.conditions import conditions_match
from src.core.notifications.exceptions import StoreUnavailableError
from src.core.notifications.stores import RuleStore
from src.core.notifications.types import NotificationCandidate, Rule, SchoolEvent

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{([^{}]+)\}\}")

DEFAULT_MESSAGE = "You have a new notification"


def render_template(template: str, metadata: Mapping[str, Any] | None) -> str:
    """Substitute ``{{key}}`` tokens with metadata values.

    Args:
        template: Text containing placeholders.
        metadata: Values to substitute.

    Returns:
        The rendered text; unresolved tokens are left unchanged.

    Example:
        >>> render_template("Grade for {{course}}: {{grade}}", {"course": "Math"})
        'Grade for Math: {{grade}}'
    """
    metadata = metadata or {}

    def substitute(match: re.Match[str]) -> str:
        value = metadata.get(match.group(1).strip())
        if value is None:
            return match.group(0)
        return str(value)

    return _PLACEHOLDER.sub(substitute, template)


class RuleEvaluator:
    """Expands a school event into candidates using stored rules.

    Args:
        rule_store: Source of active rules.
        classifier: Assigns priority to each produced candidate.
    """

    def __init__(self, rule_store: RuleStore, classifier: PriorityClassifier) -> None:
        self._rule_store = rule_store
        self._classifier = classifier

    async def expand(self, event: SchoolEvent) -> list[NotificationCandidate]:
        """Produce one candidate per matching rule, highest rule priority first.

        A rule store failure yields no candidates; it is logged, not raised.
        """
        try:
            rules = await self._rule_store.active_rules_for(event.school_id, event.event_type)
        except StoreUnavailableError:
            logger.warning(
                "Failed to load rules for school %s event %s",
                event.school_id,
                event.event_type,
                exc_info=True,
            )
            return []

        candidates = []
        for rule in sorted(rules, key=lambda r: r.priority, reverse=True):
            if not rule.is_active:
                continue
            if not conditions_match(rule.conditions, event.metadata):
                logger.debug("Rule %s did not match event %s", rule.id, event.event_type)
                continue
            candidates.append(self._build_candidate(rule, event))

        logger.info(
            "Event %s for school %s matched %d of %d rules",
            event.event_type,
            event.school_id,
            len(candidates),
            len(rules),
        )
        return candidates

    def _build_candidate(self, rule: Rule, event: SchoolEvent) -> NotificationCandidate:
        title = (
            render_template(rule.title_template, event.metadata)
            if rule.title_template
            else rule.notification_type
        )
        message = (
            render_template(rule.message_template, event.metadata)
            if rule.message_template
            else DEFAULT_MESSAGE
        )
        return NotificationCandidate(
            user_id=event.user_id,
            type=rule.notification_type,
            title=title,
            message=message,
            explicit_priority=self._classifier.classify(
                rule.notification_type, event.metadata
            ),
            metadata={**event.metadata, "ruleId": rule.id},
            channels=rule.channels,
            school_id=event.school_id,
            action_url=event.metadata.get("actionUrl"),
        )
