"""In-memory chat transcript with a single replaceable placeholder."""

import logging
import uuid
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "..."


def _make_message_id() -> str:
    return f"msg-{uuid.uuid4().hex}"


@dataclass
class Message:
    """A single transcript entry."""

    sender: str  # "user" or "assistant"
    text: str
    id: str = field(default_factory=_make_message_id)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "sender": self.sender, "text": self.text}


@dataclass
class Transcript:
    """Visible conversation history. Never persisted.

    Append-only, except that the most recent assistant placeholder may have
    its text replaced exactly once.
    """

    messages: list[Message] = field(default_factory=list)
    _placeholder_id: str | None = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.messages)

    def add(self, sender: str, text: str) -> Message:
        message = Message(sender=sender, text=text)
        self.messages.append(message)
        return message

    def add_placeholder(self) -> Message:
        """Append an assistant placeholder to be resolved later."""
        message = self.add("assistant", PLACEHOLDER_TEXT)
        self._placeholder_id = message.id
        return message

    def resolve_placeholder(self, message_id: str, text: str) -> Message:
        """Replace the pending placeholder's text. Allowed once per placeholder."""
        if message_id != self._placeholder_id:
            raise ValueError(f"Message {message_id} is not the pending placeholder")
        message = next(m for m in reversed(self.messages) if m.id == message_id)
        message.text = text
        self._placeholder_id = None
        return message

    def to_list(self) -> list[dict[str, str]]:
        return [m.to_dict() for m in self.messages]
