"""In-process notification feed for executed transactions."""

from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Literal

NotificationType = Literal["success", "error", "info"]


@dataclass
class Notification:
    type: NotificationType
    title: str
    message: str
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data


class NotificationCenter:
    def __init__(self, max_items: int = 50):
        self._items: Deque[Notification] = deque(maxlen=max_items)

    def publish(self, type: NotificationType, title: str, message: str) -> Notification:
        notification = Notification(type=type, title=title, message=message)
        self._items.append(notification)
        return notification

    def list(self) -> List[Notification]:
        return list(self._items)

    def latest(self) -> Notification:
        return self._items[-1]

    def __len__(self) -> int:
        return len(self._items)

    def reset(self) -> None:
        self._items.clear()
