"""Notification channel adapters."""
from reviewflow.adapters.notifications.slack import SlackClient, SlackMessage, build_blocks

__all__ = ["SlackClient", "SlackMessage", "build_blocks"]
