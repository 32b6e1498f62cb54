# =============================================================================
# Unit Tests - Chat History & Chat Repository
# =============================================================================
#
# ChatSession / SessionRegistry are pure in-memory objects. record_turn()
# is driven with a fake session factory and a fake repository patched in
# where the module looks it up. ChatRepository.save_chat() is tested
# against a mocked AsyncSession.
# =============================================================================

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

from fin_chat.db.models import SavedChat
from fin_chat.db.repository import ChatRepository, dedupe_chats, serialise_messages
from fin_chat.models.chat import UNTITLED_CHAT, Chat, ChatMessage
from fin_chat.services.chat_history import ChatSession, SessionRegistry, record_turn


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Test: ChatSession
# ---------------------------------------------------------------------------


class TestChatSession:

    def test_add_message_stamps_id_and_time(self):
        session = ChatSession("a@b.com", "chat-1")
        message = session.add_message("user", "Hello")
        assert message.id
        assert message.timestamp is not None
        assert session.messages == [message]

    def test_messages_keep_creation_order(self):
        session = ChatSession("a@b.com", "chat-1")
        session.add_message("user", "one")
        session.add_message("assistant", "two")
        assert [m.content for m in session.messages] == ["one", "two"]

    def test_update_last_message_only_for_assistant(self):
        session = ChatSession("a@b.com", "chat-1")
        session.add_message("user", "question")
        assert session.update_last_message("edited") is False
        assert session.messages[-1].content == "question"

        session.add_message("assistant", "draft")
        assert session.update_last_message("final") is True
        assert session.messages[-1].content == "final"

    def test_should_persist_at_threshold(self):
        session = ChatSession("a@b.com", "chat-1")
        for i in range(3):
            session.add_message("user", str(i))
        assert not session.should_persist(threshold=4)
        session.add_message("assistant", "3")
        assert session.should_persist(threshold=4)

    def test_to_chat_named_after_first_message(self):
        session = ChatSession("a@b.com", "chat-1")
        session.add_message("user", "Apple revenue?")
        session.add_message("assistant", "$383B")
        chat = session.to_chat()
        assert chat.id == "chat-1"
        assert chat.name == "Apple revenue?"
        assert len(chat.messages) == 2

    def test_empty_chat_untitled(self):
        assert ChatSession("a@b.com", "chat-1").to_chat().name == UNTITLED_CHAT


class TestSessionRegistry:

    def test_get_missing_returns_none(self):
        assert SessionRegistry(max_size=2).get("a@b.com", "nope") is None

    def test_evicts_least_recently_used(self):
        registry = SessionRegistry(max_size=2)
        registry.put(ChatSession("a@b.com", "one"))
        registry.put(ChatSession("a@b.com", "two"))
        registry.get("a@b.com", "one")  # touch
        registry.put(ChatSession("a@b.com", "three"))

        assert len(registry) == 2
        assert registry.get("a@b.com", "two") is None
        assert registry.get("a@b.com", "one") is not None

    def test_discard(self):
        registry = SessionRegistry(max_size=10)
        registry.put(ChatSession("a@b.com", "chat-1"))
        registry.discard("a@b.com", "chat-1")
        registry.discard("a@b.com", "never-added")
        assert len(registry) == 0

    def test_sessions_scoped_by_user(self):
        registry = SessionRegistry(max_size=10)
        registry.put(ChatSession("a@b.com", "chat-1"))
        assert registry.get("other@b.com", "chat-1") is None


# ---------------------------------------------------------------------------
# Test: record_turn (background task)
# ---------------------------------------------------------------------------


class FakeDB:
    """Async context manager standing in for an AsyncSession."""

    def __init__(self):
        self.commit = AsyncMock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class TestRecordTurn:

    def _record(self, repo, registry, question="Q", answer="A"):
        db = FakeDB()
        with patch(
            "fin_chat.services.chat_history.ChatRepository", return_value=repo,
        ), patch(
            "fin_chat.services.chat_history.settings.chat_persist_threshold", 4,
        ):
            _run(record_turn(
                "a@b.com", "chat-1", question, answer,
                registry=registry, session_factory=lambda: db,
            ))
        return db

    def _repo(self, saved=None):
        repo = AsyncMock()
        repo.get_chat.return_value = saved
        repo.save_chat.return_value = True
        repo.update_messages.return_value = True
        return repo

    def test_first_turn_stays_in_memory(self):
        repo, registry = self._repo(), SessionRegistry(max_size=10)
        db = self._record(repo, registry)

        session = registry.get("a@b.com", "chat-1")
        assert [m.role for m in session.messages] == ["user", "assistant"]
        repo.save_chat.assert_not_called()
        db.commit.assert_not_called()

    def test_threshold_turn_saves_chat(self):
        repo, registry = self._repo(), SessionRegistry(max_size=10)
        self._record(repo, registry, question="Apple revenue?")
        db = self._record(repo, registry, question="And Microsoft?")

        repo.save_chat.assert_awaited_once()
        user_email, chat = repo.save_chat.call_args.args
        assert user_email == "a@b.com"
        assert chat.name == "Apple revenue?"
        assert len(chat.messages) == 4
        assert registry.get("a@b.com", "chat-1").persisted
        db.commit.assert_awaited_once()

    def test_later_turns_update_saved_chat(self):
        repo, registry = self._repo(), SessionRegistry(max_size=10)
        for _ in range(3):
            self._record(repo, registry)

        repo.save_chat.assert_awaited_once()
        repo.update_messages.assert_awaited_once()
        _, chat_id, messages = repo.update_messages.call_args.args
        assert chat_id == "chat-1"
        assert len(messages) == 6

    def test_resumes_saved_chat(self):
        saved = Chat.from_messages("chat-1", [
            ChatMessage(role="user", content="Apple revenue?"),
            ChatMessage(role="assistant", content="$383B"),
            ChatMessage(role="user", content="Microsoft?"),
            ChatMessage(role="assistant", content="$211B"),
        ])
        repo, registry = self._repo(saved), SessionRegistry(max_size=10)
        self._record(repo, registry)

        repo.save_chat.assert_not_called()
        _, _, messages = repo.update_messages.call_args.args
        assert len(messages) == 6
        assert messages[0].content == "Apple revenue?"

    def test_duplicate_save_not_marked_persisted(self):
        repo, registry = self._repo(), SessionRegistry(max_size=10)
        repo.save_chat.return_value = False
        self._record(repo, registry)
        self._record(repo, registry)
        assert not registry.get("a@b.com", "chat-1").persisted

    def test_deleted_chat_saved_again(self):
        repo, registry = self._repo(), SessionRegistry(max_size=10)
        self._record(repo, registry)
        self._record(repo, registry)
        repo.update_messages.return_value = False

        self._record(repo, registry)

        assert repo.save_chat.await_count == 2
        _, chat = repo.save_chat.call_args.args
        assert len(chat.messages) == 6
        assert registry.get("a@b.com", "chat-1").persisted

    def test_discarded_session_resumes_edited_messages(self):
        stored: dict[str, Chat] = {}

        async def save_chat(user_email, chat):
            stored[chat.id] = chat
            return True

        async def update_messages(user_email, chat_id, messages):
            stored[chat_id] = Chat.from_messages(chat_id, messages)
            return True

        async def get_chat(user_email, chat_id):
            return stored.get(chat_id)

        repo = AsyncMock()
        repo.save_chat.side_effect = save_chat
        repo.update_messages.side_effect = update_messages
        repo.get_chat.side_effect = get_chat
        registry = SessionRegistry(max_size=10)

        self._record(repo, registry, question="Q1", answer="A-Q1")
        self._record(repo, registry, question="Q2", answer="A-Q2")
        # Client edits the last answer through the chats API
        edited = list(stored["chat-1"].messages)
        edited[-1] = ChatMessage(role="assistant", content="EDITED")
        stored["chat-1"] = Chat.from_messages("chat-1", edited)
        registry.discard("a@b.com", "chat-1")

        self._record(repo, registry, question="Q3", answer="A-Q3")

        assert [m.content for m in stored["chat-1"].messages] == [
            "Q1", "A-Q1", "Q2", "EDITED", "Q3", "A-Q3",
        ]

    def test_repository_failure_is_swallowed(self):
        repo, registry = self._repo(), SessionRegistry(max_size=10)
        repo.get_chat.side_effect = RuntimeError("database is down")
        # Must not raise
        self._record(repo, registry)


# ---------------------------------------------------------------------------
# Test: Repository duplicate handling
# ---------------------------------------------------------------------------


def _messages(*contents: str) -> list[ChatMessage]:
    roles = ["user", "assistant"]
    return [
        ChatMessage(role=roles[i % 2], content=c) for i, c in enumerate(contents)
    ]


class TestDedupeChats:

    def test_same_name_and_count_dropped(self):
        first = Chat.from_messages("1", _messages("Apple?", "Yes"))
        second = Chat.from_messages("2", _messages("Apple?", "No"))
        assert dedupe_chats([first, second]) == [first]

    def test_same_name_different_count_kept(self):
        first = Chat.from_messages("1", _messages("Apple?", "Yes"))
        second = Chat.from_messages("2", _messages("Apple?", "Yes", "More?", "Sure"))
        assert dedupe_chats([first, second]) == [first, second]


class TestSaveChat:
    """ChatRepository.save_chat against a mocked AsyncSession."""

    def _session(self, rows):
        session = AsyncMock()
        session.add = MagicMock()
        result = MagicMock()
        result.scalars.return_value.all.return_value = rows
        session.execute.return_value = result
        return session

    def test_identical_messages_not_saved(self):
        messages = _messages("Apple?", "Yes")
        existing = SavedChat(
            user_email="a@b.com", chat_id="old", name="Apple?",
            messages=serialise_messages(messages),
        )
        session = self._session([existing])

        saved = _run(ChatRepository(session).save_chat(
            "a@b.com", Chat.from_messages("new", messages),
        ))

        assert saved is False
        session.add.assert_not_called()

    def test_new_chat_added(self):
        session = self._session([])
        saved = _run(ChatRepository(session).save_chat(
            "a@b.com", Chat.from_messages("new", _messages("Apple?", "Yes")),
        ))

        assert saved is True
        row = session.add.call_args.args[0]
        assert row.chat_id == "new"
        assert row.name == "Apple?"
        assert len(row.messages) == 2
        session.flush.assert_awaited_once()

    def test_existing_chat_id_overwritten(self):
        existing = SavedChat(
            user_email="a@b.com", chat_id="chat-1", name="Apple?",
            messages=serialise_messages(_messages("Apple?", "Yes")),
        )
        session = self._session([existing])

        saved = _run(ChatRepository(session).save_chat(
            "a@b.com",
            Chat.from_messages("chat-1", _messages("Apple?", "Yes", "More?", "Sure")),
        ))

        assert saved is True
        session.add.assert_not_called()
        assert len(existing.messages) == 4
