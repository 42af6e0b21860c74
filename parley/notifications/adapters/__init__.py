"""Notification channel adapters."""

from parley.notifications.adapters.email import EmailAdapter
from parley.notifications.adapters.slack import SlackAdapter
from parley.notifications.adapters.whatsapp import WhatsAppAdapter

__all__ = ["EmailAdapter", "SlackAdapter", "WhatsAppAdapter"]
