"""
Nebula Chat

블록체인 AI 에이전트 채팅 코어
- SSE 스트림 디코딩 및 이벤트 해석
- 대화 저장소 (스트리밍 조각 병합, 로컬 영속화)
- 트랜잭션 액션 디스패치
"""

from .types import (
    ActionRequest,
    ChatMessage,
    ChatResult,
    Conversation,
    MessageCategory,
    MessageRole,
    NormalizedEvent,
    StreamError,
    StreamFrame,
    TextDelta,
)

from .errors import (
    ConversationNotFoundError,
    MalformedFrameError,
    MissingCredentialError,
    NebulaChatError,
    StoreNotReadyError,
    StreamProtocolError,
    TransactionFailure,
    UpstreamError,
)

from .config import NebulaConfig
from .credentials import Credentials, CredentialStore
from .transport import ChatStream, NebulaClient
from .sse import SSEDecoder, aiter_frames, iter_frames
from .protocol import aiter_events, classify_frame, iter_events
from .titles import generate_title
from .summary import extract_summary, summarize_category
from .storage import JSONFileStorage, MemoryStorage
from .store import ConversationStore, StoreState
from .dispatcher import ActionDispatcher, TransactionOutcome, TransactionRequest, describe_transaction
from .session import ChatSession, TurnResult, TurnStatus

__all__ = [
    # Types
    "ActionRequest",
    "ChatMessage",
    "ChatResult",
    "Conversation",
    "MessageCategory",
    "MessageRole",
    "NormalizedEvent",
    "StreamError",
    "StreamFrame",
    "TextDelta",
    # Errors
    "ConversationNotFoundError",
    "MalformedFrameError",
    "MissingCredentialError",
    "NebulaChatError",
    "StoreNotReadyError",
    "StreamProtocolError",
    "TransactionFailure",
    "UpstreamError",
    # Config
    "NebulaConfig",
    "Credentials",
    "CredentialStore",
    # Transport / Protocol
    "ChatStream",
    "NebulaClient",
    "SSEDecoder",
    "aiter_frames",
    "iter_frames",
    "aiter_events",
    "classify_frame",
    "iter_events",
    # Store
    "generate_title",
    "extract_summary",
    "summarize_category",
    "JSONFileStorage",
    "MemoryStorage",
    "ConversationStore",
    "StoreState",
    # Actions / Session
    "ActionDispatcher",
    "TransactionOutcome",
    "TransactionRequest",
    "describe_transaction",
    "ChatSession",
    "TurnResult",
    "TurnStatus",
]
