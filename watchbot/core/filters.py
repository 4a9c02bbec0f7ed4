"""Actionability rules for feedback items."""

from typing import Iterable, List, Sequence

from watchbot.core.models import FeedbackItem, FeedbackKind

DEFAULT_BOT_LOGINS = ("github-actions[bot]",)
DEFAULT_APPROVED_STATES = ("APPROVED",)


class ActionabilityFilter:
    """Decides which feedback items are worth creating a task for."""

    def __init__(
        self,
        bot_logins: Iterable[str] = DEFAULT_BOT_LOGINS,
        approved_states: Iterable[str] = DEFAULT_APPROVED_STATES,
    ):
        """
        Initialize the filter.
        
        Args:
            bot_logins: Automation identities whose feedback is never actionable
            approved_states: Review states that signal approval (case-insensitive)
        """
        self.bot_logins = frozenset(login.strip().lower() for login in bot_logins if login.strip())
        self.approved_states = frozenset(state.strip().upper() for state in approved_states if state.strip())

    def is_actionable(self, item: FeedbackItem) -> bool:
        if item.author.lower() in self.bot_logins:
            return False

        if item.kind == FeedbackKind.REVIEW:
            if item.state and item.state.upper() in self.approved_states:
                return False
            if not item.body.strip():
                return False

        return True

    def actionable_items(self, items: Sequence[FeedbackItem]) -> List[FeedbackItem]:
        return [item for item in items if self.is_actionable(item)]

    def has_actionable(self, items: Sequence[FeedbackItem]) -> bool:
        return any(self.is_actionable(item) for item in items)
