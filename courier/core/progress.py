"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Loading-indicator control.

Every call toggles the loading indicator unless its (group, variant) is
listed as suppressed, e.g. background polling that should stay invisible.
A ``*`` variant suppresses the whole group.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple

from courier.core.interfaces import ProgressIndicator
from courier.core.target import TargetDescriptor
from courier.logging_config import get_logger
from courier.transport.hooks import Activity

logger = get_logger(__name__)

ANY_VARIANT = "*"


class ProgressAction(str, Enum):
    """What a call does to the loading indicator."""
    TOGGLE = "toggle"
    SUPPRESS = "suppress"


RuleKey = Tuple[str, str]


class ProgressNotifier:
    """
    Maps transport activity to loading-indicator start/stop signals.

    Args:
        indicator: The visible loading indicator
        rules: ``(group, variant) -> ProgressAction`` table; unlisted
            combinations toggle
    """

    def __init__(
        self,
        indicator: ProgressIndicator,
        rules: Optional[Mapping[RuleKey, ProgressAction]] = None,
    ) -> None:
        self.indicator = indicator
        self._rules: Dict[RuleKey, ProgressAction] = dict(rules or {})

    @classmethod
    def from_suppress_list(
        cls, indicator: ProgressIndicator, entries: Iterable[str]
    ) -> "ProgressNotifier":
        """
        Build a notifier from ``group/variant`` strings.

        Args:
            indicator: The visible loading indicator
            entries: e.g. ``["ExchangeService/EXCHANGE", "Polling/*"]``
        """
        rules = {}
        for entry in entries:
            group, variant = entry.split("/", 1)
            rules[(group, variant)] = ProgressAction.SUPPRESS
        return cls(indicator, rules)

    def action_for(self, group: str, variant: str) -> ProgressAction:
        action = self._rules.get((group, variant))
        if action is None:
            action = self._rules.get((group, ANY_VARIANT), ProgressAction.TOGGLE)
        return action

    def on_activity(self, activity: Activity, target: TargetDescriptor) -> None:
        if self.action_for(target.group, target.variant) is ProgressAction.SUPPRESS:
            return

        if activity is Activity.BEGAN:
            self.indicator.start_loading()
        else:
            self.indicator.stop_loading()
        logger.debug(
            "progress_toggled",
            activity=activity.value,
            group=target.group,
            variant=target.variant,
        )
