"""
Conversation history

Session-scoped chat transcripts. Only the most recent ``window`` messages are
handed to the LLM; the full transcript is kept up to ``max_messages``.
At most ``max_sessions`` transcripts are held; adding a message to a new
session past that evicts the least recently active one.
"""

import logging
import uuid
from collections import OrderedDict, deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ConversationMessage(BaseModel):
    """Individual message in a conversation"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: str = Field(description="Message role: user, assistant, or system")
    content: str = Field(description="Message content")
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def as_llm_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


class ConversationStore:
    def __init__(self, window: int = 10, max_messages: int = 100, max_sessions: int = 1000):
        self.window = window
        self.max_messages = max_messages
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, Deque[ConversationMessage]]" = OrderedDict()

    def add_message(
        self,
        session_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content, metadata=metadata or {})
        history = self._sessions.get(session_id)
        if history is None:
            history = self._sessions[session_id] = deque(maxlen=self.max_messages)
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("Evicted conversation %s", evicted)
        else:
            self._sessions.move_to_end(session_id)
        history.append(message)
        return message

    def get_history(self, session_id: str, limit: Optional[int] = None) -> List[ConversationMessage]:
        """Most recent messages for ``session_id``, oldest first."""
        history = self._sessions.get(session_id)
        if not history:
            return []
        count = self.window if limit is None else limit
        if count <= 0:
            return []
        return list(history)[-count:]

    def get_llm_messages(self, session_id: str) -> List[Dict[str, str]]:
        return [m.as_llm_message() for m in self.get_history(session_id) if m.role in ("user", "assistant")]

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def clear(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def reset(self) -> None:
        self._sessions.clear()
