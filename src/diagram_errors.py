from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Callable

__all__ = [
    "ACTIONABLE_ERROR_PATTERN",
    "NoticeSurface",
    "format_diagram_error",
    "is_actionable_message",
    "show_notice_dialog",
]

logger = logging.getLogger("diagram_errors")

ACTIONABLE_ERROR_PATTERN = re.compile(r"^[^:\n]+: .+\. Fix: .+\.$")


def _clean(value: object, default: str) -> str:
    text = str(value).strip()
    return text if text else default


def format_diagram_error(context: str, location: str, issue: str, hint: str) -> str:
    clean_context = str(context).strip()
    clean_location = _clean(location, "Unknown")
    clean_issue = _clean(issue, "unknown issue")
    clean_hint = _clean(hint, "review input and retry")
    if clean_context:
        return f"{clean_context} / {clean_location}: {clean_issue}. Fix: {clean_hint}."
    return f"{clean_location}: {clean_issue}. Fix: {clean_hint}."


def is_actionable_message(message: str) -> bool:
    return bool(ACTIONABLE_ERROR_PATTERN.match(str(message).strip()))


def show_notice_dialog(title: str, message: str) -> None:
    from tkinter import messagebox

    messagebox.showerror(title, message)


@dataclass
class NoticeSurface:
    """Routes user-visible notices to a dialog and/or a status line.

    Both callbacks are optional so headless callers (tests, the CLI) can
    collect notices without a Tk root.
    """

    context: str
    dialog_title: str
    show_dialog: Callable[[str, str], None] | None = None
    set_status: Callable[[str], None] | None = None

    def format(self, *, location: str, issue: str, hint: str) -> str:
        return format_diagram_error(self.context, location, issue, hint)

    def emit_formatted(self, message: str) -> str:
        logger.info("Notice: %s", message)
        if self.show_dialog is not None:
            self.show_dialog(self.dialog_title, message)
        if self.set_status is not None:
            self.set_status(message)
        return message

    def emit(self, *, location: str, issue: str, hint: str) -> str:
        return self.emit_formatted(self.format(location=location, issue=issue, hint=hint))
