"""Conversations, chat history and feedback on answers.

Every question is stored in a conversation owned by the asking user together
with the assistant's answer. A user may have a bounded number of active
conversations; history older than the retention window is purged whenever
history is read.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from docqa.constants import (
    CHAT_HISTORY_LIMIT,
    CHAT_HISTORY_RETENTION_DAYS,
    CONVERSATION_TITLE_MAX_LENGTH,
    FEEDBACK_RATING_RANGE,
    MAX_ACTIVE_CONVERSATIONS,
)
from docqa.exceptions import (
    ConversationLimitError,
    ConversationNotFoundError,
    InvalidFeedbackError,
    InvalidQuestionError,
)
from docqa.models import Answer
from docqa.service.answer import AnswerAssembler
from docqa.service.database import ChatMessage, Conversation, Feedback, Storage
from docqa.service.database.models import utcnow

logger = logging.getLogger(__name__)

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"


def conversation_title(question: str) -> str:
    """Title a new conversation after its first question, truncated with "..."."""
    if len(question) <= CONVERSATION_TITLE_MAX_LENGTH:
        return question
    return question[: CONVERSATION_TITLE_MAX_LENGTH - 3] + "..."


@dataclass
class ChatExchange:
    """One stored question with its stored answer."""

    conversation: Conversation
    user_message: ChatMessage
    assistant_message: ChatMessage
    answer: Answer


class ConversationService:
    """Stores questions and answers per user conversation.

    Args:
        storage: Where conversations, messages and feedback are persisted
        assembler: Answers questions from the documentation
        max_active: Active conversations allowed per user
        retention_days: Age after which chat messages are purged
    """

    def __init__(
        self,
        storage: Storage,
        assembler: AnswerAssembler,
        max_active: int = MAX_ACTIVE_CONVERSATIONS,
        retention_days: int = CHAT_HISTORY_RETENTION_DAYS,
    ) -> None:
        self.storage = storage
        self.assembler = assembler
        self.max_active = max_active
        self.retention_days = retention_days

    def get_conversation(self, user_id: str, conversation_id: str) -> Conversation:
        """Load a conversation owned by user_id.

        Raises:
            ConversationNotFoundError: If it does not exist or belongs to someone else
        """
        conversation = self.storage.get_conversation(conversation_id)
        if conversation is None or conversation.user_id != user_id:
            raise ConversationNotFoundError(
                "Conversation not found", {"conversation_id": conversation_id}
            )
        return conversation

    def open_conversation(
        self, user_id: str, question: str, conversation_id: str | None = None
    ) -> Conversation:
        """Continue an existing conversation or start a new one.

        Raises:
            ConversationNotFoundError: If conversation_id is not one of the user's
            ConversationLimitError: If a new conversation would exceed max_active
        """
        if conversation_id:
            return self.get_conversation(user_id, conversation_id)

        if self.storage.count_active_conversations(user_id) >= self.max_active:
            raise ConversationLimitError(
                f"You have reached the maximum of {self.max_active} active conversations. "
                "Please delete an old conversation to start a new one.",
                {"user_id": user_id},
            )

        conversation = self.storage.insert_conversation(
            Conversation(user_id=user_id, title=conversation_title(question))
        )
        logger.info(f"💬 Started conversation {conversation.id} for {user_id}")
        return conversation

    async def ask(
        self, user_id: str, question: str, conversation_id: str | None = None
    ) -> ChatExchange:
        """Store a question, answer it and store the answer.

        The question is stored before answering, so it stays in the
        conversation even when answering fails.

        Raises:
            InvalidQuestionError: If the question is blank
            ConversationNotFoundError: See open_conversation
            ConversationLimitError: See open_conversation
            QuotaExceededError: If every model is rate limited
            AnswerGenerationError: For any other answering failure
        """
        if not isinstance(question, str) or not question.strip():
            raise InvalidQuestionError("Question is required")

        conversation = self.open_conversation(user_id, question, conversation_id)
        user_message = self.storage.insert_message(
            ChatMessage(
                conversation_id=conversation.id,
                user_id=user_id,
                role=USER_ROLE,
                content=question,
            )
        )

        answer = await self.assembler.answer_question(question)

        assistant_message = self.storage.insert_message(
            ChatMessage(
                conversation_id=conversation.id,
                user_id=user_id,
                role=ASSISTANT_ROLE,
                content=answer.text,
                sources=[source.to_dict() for source in answer.sources] or None,
                needs_feedback=answer.needs_feedback,
            )
        )
        self.storage.update_conversation(conversation)
        return ChatExchange(conversation, user_message, assistant_message, answer)

    def list_conversations(self, user_id: str) -> list[Conversation]:
        return self.storage.list_conversations(user_id)

    def get_messages(self, user_id: str, conversation_id: str) -> list[ChatMessage]:
        self.get_conversation(user_id, conversation_id)
        return self.storage.list_conversation_messages(conversation_id)

    def delete_conversation(self, user_id: str, conversation_id: str) -> None:
        """Delete one of the user's conversations with its messages."""
        self.get_conversation(user_id, conversation_id)
        self.storage.delete_conversation(conversation_id)
        logger.info(f"🗑️  Conversation {conversation_id} deleted")

    def purge_old_messages(self) -> int:
        """Delete messages older than the retention window (all users)."""
        cutoff = utcnow() - timedelta(days=self.retention_days)
        return self.storage.delete_messages_before(cutoff)

    def history(self, user_id: str, limit: int = CHAT_HISTORY_LIMIT) -> list[ChatMessage]:
        """Purge expired messages, then return the user's latest ones oldest first."""
        purged = self.purge_old_messages()
        if purged:
            logger.info(f"🧹 Purged {purged} chat messages older than {self.retention_days} days")
        return self.storage.list_user_messages(user_id, limit)


def submit_feedback(
    storage: Storage,
    user_id: str,
    feedback_type: str | None,
    conversation_id: str | None = None,
    message_id: str | None = None,
    feedback_text: str | None = None,
    rating: int | None = None,
) -> Feedback:
    """Validate and store user feedback.

    Raises:
        InvalidFeedbackError: If feedback_type is missing or rating is not an
                              integer in FEEDBACK_RATING_RANGE
    """
    if not feedback_type or not str(feedback_type).strip():
        raise InvalidFeedbackError("Feedback type is required")

    if rating is not None:
        low, high = FEEDBACK_RATING_RANGE
        if isinstance(rating, bool) or not isinstance(rating, int) or not low <= rating <= high:
            raise InvalidFeedbackError(
                f"Rating must be an integer from {low} to {high}", {"rating": rating}
            )

    feedback = storage.insert_feedback(
        Feedback(
            user_id=user_id,
            feedback_type=str(feedback_type).strip(),
            conversation_id=conversation_id,
            message_id=message_id,
            feedback_text=feedback_text,
            rating=rating,
        )
    )
    logger.info(f"📝 Feedback {feedback.id} ({feedback.feedback_type}) from {user_id}")
    return feedback
