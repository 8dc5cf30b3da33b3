"""
Conversation Store

대화 목록 저장소
- 최신 대화가 앞쪽 (deque, O(1) prepend)
- 스트리밍 조각 병합 (merge=True 시 같은 역할의 마지막 메시지에 이어붙임)
- 변경 시마다 로컬 저장소에 전체 상태 저장
- UNINITIALIZED → READY 라이프사이클 (load 전 변경 작업 거부)
"""

from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional
import json
import logging

from .config import DEFAULT_STORAGE_KEY, NebulaConfig
from .errors import ConversationNotFoundError, StoreNotReadyError
from .storage import JSONFileStorage, KeyValueStorage, MemoryStorage
from .titles import generate_title
from .types import DEFAULT_CHAT_NAME, ChatMessage, Conversation, MessageCategory, MessageRole

logger = logging.getLogger(__name__)


class StoreState(str, Enum):
    """저장소 상태"""
    UNINITIALIZED = "uninitialized"
    READY = "ready"


ChangeListener = Callable[["ConversationStore"], None]


class ConversationStore:
    """
    대화 저장소

    사용 예시:
        store = ConversationStore(JSONFileStorage("./.nebula-chat")).load()

        chat_id = store.create_conversation()
        store.append_message(chat_id, ChatMessage.user("send 0.01 ETH to vitalik.eth"))

        # 스트리밍 조각 병합
        store.append_message(chat_id, ChatMessage.assistant("Prep"), merge=True)
        store.append_message(chat_id, ChatMessage.assistant("aring..."), merge=True)
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.storage_key = storage_key

        self._chats: Deque[Conversation] = deque()
        self._index: Dict[str, Conversation] = {}
        self._active_id: Optional[str] = None
        self._state = StoreState.UNINITIALIZED
        self._listeners: List[ChangeListener] = []

    @classmethod
    def from_config(cls, config: NebulaConfig) -> "ConversationStore":
        """설정 기반 파일 저장소 생성"""
        return cls(JSONFileStorage(config.storage_dir), storage_key=config.storage_key)

    # ===================
    # Lifecycle
    # ===================

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == StoreState.READY

    def load(self) -> "ConversationStore":
        """저장된 상태 로드 후 READY 전환"""
        raw = self.storage.get_item(self.storage_key)
        if raw:
            try:
                self._restore(json.loads(raw))
            except (ValueError, KeyError, TypeError) as e:
                logger.error(f"Failed to load persisted conversations, starting empty: {e}")
                self._restore({})

        self._state = StoreState.READY
        logger.info(f"Conversation store ready: {len(self._chats)} conversations")
        self._notify()
        return self

    def _require_ready(self):
        if self._state != StoreState.READY:
            raise StoreNotReadyError("Conversation store is not loaded yet")

    # ===================
    # Queries
    # ===================

    @property
    def conversations(self) -> List[Conversation]:
        """대화 목록 (최신순)"""
        return list(self._chats)

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_conversation(self) -> Optional[Conversation]:
        if self._active_id is None:
            return None
        return self._index.get(self._active_id)

    def get(self, conversation_id: str) -> Conversation:
        """대화 조회"""
        conversation = self._index.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation not found: {conversation_id}")
        return conversation

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._index

    def __len__(self) -> int:
        return len(self._chats)

    # ===================
    # Mutations
    # ===================

    def create_conversation(self) -> str:
        """새 대화 생성 (맨 앞에 추가, 활성화)"""
        self._require_ready()

        conversation = Conversation()
        self._chats.appendleft(conversation)
        self._index[conversation.id] = conversation
        self._active_id = conversation.id

        logger.debug(f"Created conversation: {conversation.id}")
        self._commit()
        return conversation.id

    def delete_conversation(self, conversation_id: str) -> bool:
        """대화 삭제"""
        self._require_ready()

        conversation = self._index.pop(conversation_id, None)
        if conversation is None:
            return False

        self._chats.remove(conversation)
        if self._active_id == conversation_id:
            self._active_id = None

        self._commit()
        return True

    def clear_all(self):
        """전체 대화 삭제"""
        self._require_ready()

        self._chats.clear()
        self._index.clear()
        self._active_id = None
        self._commit()

    def set_active(self, conversation_id: Optional[str]):
        """활성 대화 설정 (None = 없음)"""
        self._require_ready()

        if conversation_id is not None and conversation_id not in self._index:
            raise ConversationNotFoundError(f"Conversation not found: {conversation_id}")

        self._active_id = conversation_id
        self._commit()

    def ensure_active(self) -> str:
        """활성 대화 보장 (없으면 가장 최근 대화, 그것도 없으면 새로 생성)"""
        self._require_ready()

        if self._active_id is not None:
            return self._active_id
        if self._chats:
            self.set_active(self._chats[0].id)
            return self._chats[0].id
        return self.create_conversation()

    def append_message(
        self,
        conversation_id: str,
        message: ChatMessage,
        merge: bool = False,
    ) -> ChatMessage:
        """
        메시지 추가

        Args:
            conversation_id: 대화 ID
            message: 추가할 메시지
            merge: True이고 마지막 메시지가 같은 역할이면 내용을 이어붙임

        Returns:
            대화의 마지막 메시지
        """
        self._require_ready()
        conversation = self.get(conversation_id)

        last = conversation.last_message
        if merge and last is not None and last.role == message.role:
            last.content += message.content
        else:
            # 첫 사용자 메시지로 제목 생성 (한 번만)
            if (
                message.role == MessageRole.USER
                and conversation.name == DEFAULT_CHAT_NAME
                and not conversation.has_user_message()
            ):
                conversation.name = generate_title(message.content)
                logger.debug(f"Named conversation {conversation_id}: {conversation.name}")
            conversation.messages.append(message)

        conversation.touch()
        self._commit()
        return conversation.messages[-1]

    def set_last_category(self, conversation_id: str, category: MessageCategory) -> bool:
        """
        마지막 어시스턴트 메시지 분류 설정

        Returns:
            마지막 메시지가 어시스턴트 메시지여서 변경되었는지 여부
        """
        self._require_ready()
        last = self.get(conversation_id).last_message
        if last is None or last.role != MessageRole.ASSISTANT:
            return False

        last.category = category
        self._commit()
        return True

    def rename_conversation(self, conversation_id: str, name: str):
        """대화 이름 변경"""
        self._require_ready()
        conversation = self.get(conversation_id)
        conversation.name = name
        self._commit()

    # ===================
    # Listeners
    # ===================

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        변경 리스너 등록

        Returns:
            등록 해제 함수
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Conversation store listener raised an error")

    # ===================
    # Persistence
    # ===================

    def to_dict(self) -> Dict[str, Any]:
        """직렬화 ({"chats": [...], "activeChat": id | None})"""
        return {
            "chats": [conversation.to_dict() for conversation in self._chats],
            "activeChat": self._active_id,
        }

    def _restore(self, data: Dict[str, Any]):
        chats = [Conversation.from_dict(item) for item in data.get("chats", [])]
        self._chats = deque(chats)
        self._index = {conversation.id: conversation for conversation in chats}

        active_id = data.get("activeChat")
        self._active_id = active_id if active_id in self._index else None

    def _commit(self):
        """저장 + 리스너 알림"""
        self.storage.set_item(self.storage_key, json.dumps(self.to_dict(), ensure_ascii=False))
        self._notify()
