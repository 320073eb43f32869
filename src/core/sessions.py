"""In-memory per-session stores for chat history and product images.

Both stores are explicitly owned objects held by the application state and
are lost on restart. Neither store evicts sessions.
"""

import threading
from dataclasses import dataclass

from src.core.providers import ChatMessage


@dataclass(frozen=True)
class ProductImage:
    """A reference product image uploaded by a session.

    Attributes:
        mime_type: MIME type taken from the data URL (e.g. "image/png").
        data_b64: Base64 payload without the data URL header.
    """

    mime_type: str
    data_b64: str

    @property
    def data_url(self) -> str:
        """The image re-encoded as a data URL."""
        return f"data:{self.mime_type};base64,{self.data_b64}"


class ConversationStore:
    """Ordered chat turns per session.

    Attributes:
        max_turns: If set, only the most recent turns are kept per session.
    """

    def __init__(self, max_turns: int | None = None) -> None:
        self.max_turns = max_turns
        self._turns: dict[str, list[ChatMessage]] = {}
        self._lock = threading.Lock()

    def append(self, session_id: str, role: str, content: str) -> None:
        """Append a turn to the session's history."""
        with self._lock:
            turns = self._turns.setdefault(session_id, [])
            turns.append(ChatMessage(role=role, content=content))
            if self.max_turns is not None and len(turns) > self.max_turns:
                del turns[: len(turns) - self.max_turns]

    def history(self, session_id: str) -> list[ChatMessage]:
        """Return a copy of the session's turns, oldest first."""
        with self._lock:
            return list(self._turns.get(session_id, []))

    def discard_last(self, session_id: str, role: str) -> bool:
        """Remove the most recent turn if it has the given role.

        Used to roll back a user turn whose completion failed, so the next
        attempt does not send the same message twice.

        Returns:
            True if a turn was removed.
        """
        with self._lock:
            turns = self._turns.get(session_id)
            if turns and turns[-1].role == role:
                turns.pop()
                return True
            return False

    def clear(self, session_id: str | None = None) -> None:
        """Clear one session's history, or all histories if None."""
        with self._lock:
            if session_id is None:
                self._turns.clear()
            else:
                self._turns.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._turns)


class ProductImageStore:
    """Most recently uploaded product image per session."""

    def __init__(self) -> None:
        self._images: dict[str, ProductImage] = {}

    def put(self, session_id: str, image: ProductImage) -> None:
        """Store the image, replacing any previous upload."""
        self._images[session_id] = image

    def get(self, session_id: str) -> ProductImage | None:
        """Return the session's image, or None if nothing was uploaded."""
        return self._images.get(session_id)

    def clear(self, session_id: str | None = None) -> None:
        """Forget one session's image, or all images if None."""
        if session_id is None:
            self._images.clear()
        else:
            self._images.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._images)
