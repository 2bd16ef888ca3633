from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ""
    variant: str = DEFAULT

    @property
    def is_error(self) -> bool:
        return self.variant == DESTRUCTIVE


class Notifier:
    """Collects user-facing notifications and forwards them to an optional sink (a UI toast)."""

    def __init__(self, sink: Optional[Callable[[Notification], None]] = None):
        self.sink = sink
        self.history: List[Notification] = []

    def notify(self, title: str, description: str = "", *, variant: str = DEFAULT) -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self.history.append(notification)
        if self.sink is not None:
            self.sink(notification)
        return notification

    def error(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description, variant=DESTRUCTIVE)

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None
