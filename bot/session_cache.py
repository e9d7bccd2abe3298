"""Per-chat in-memory state for the chat-bot front end."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class ChatState:
    user_id: str
    language: str = "en"
    session_id: Optional[str] = None
    question_index: int = 0  # hint only; the persisted session wins
    document_id: Optional[str] = None


class BotSessionCache:
    def __init__(self) -> None:
        self._chats: Dict[str, ChatState] = {}

    def save(self, chat_id: str, state: ChatState) -> None:
        self._chats[chat_id] = state

    def get(self, chat_id: str) -> Optional[ChatState]:
        return self._chats.get(chat_id)

    def delete(self, chat_id: str) -> None:
        self._chats.pop(chat_id, None)

    def exists(self, chat_id: str) -> bool:
        return chat_id in self._chats
