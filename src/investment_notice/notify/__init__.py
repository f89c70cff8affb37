"""Report rendering and delivery."""

from investment_notice.notify.email import EmailNotifier, Notifier
from investment_notice.notify.render import render_report, subject_for

__all__ = [
    "Notifier",
    "EmailNotifier",
    "render_report",
    "subject_for",
]
