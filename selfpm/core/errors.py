"""Exceptions raised by selfpm itself."""

from __future__ import annotations


class SelfPmError(Exception):
    pass


class UnsupportedEventAccess(SelfPmError):
    """An event accessor was called for data the event does not carry."""

    def __init__(self, what: str, event_type: str) -> None:
        label = getattr(event_type, "value", event_type)
        super().__init__(f"No {what} in the {label} event.")
        self.what = what
        self.event_type = event_type


class CoreLoadError(SelfPmError):
    """A collaborator import path could not be loaded."""
