"""
Chat Types

대화/메시지 및 스트리밍 이벤트 데이터 타입 정의
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any, Union
import uuid

from pydantic import BaseModel, Field


DEFAULT_CHAT_NAME = "New Chat"


class MessageRole(str, Enum):
    """메시지 역할"""
    USER = "user"
    ASSISTANT = "assistant"


class MessageCategory(str, Enum):
    """메시지 분류 (UI 요약 표시용)"""
    TRANSFER = "transfer"
    DEPLOY = "deploy"
    QUERY = "query"
    ERROR = "error"
    GENERAL = "general"


@dataclass
class ChatMessage:
    """채팅 메시지"""
    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    category: Optional[MessageCategory] = None

    @classmethod
    def user(cls, content: str, **kwargs) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content, **kwargs)

    @classmethod
    def assistant(cls, content: str, **kwargs) -> "ChatMessage":
        return cls(role=MessageRole.ASSISTANT, content=content, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리 변환"""
        data = {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.category:
            data["category"] = self.category.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        """딕셔너리에서 생성"""
        category = data.get("category")
        return cls(
            role=MessageRole(data["role"]),
            content=data["content"],
            timestamp=datetime.fromisoformat(data.get("timestamp", datetime.now().isoformat())),
            category=MessageCategory(category) if category else None,
        )


@dataclass
class Conversation:
    """대화 (메시지 목록 + 메타데이터)"""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    name: str = DEFAULT_CHAT_NAME
    last_activity: datetime = field(default_factory=datetime.now)
    messages: List[ChatMessage] = field(default_factory=list)

    @property
    def last_message(self) -> Optional[ChatMessage]:
        return self.messages[-1] if self.messages else None

    def has_user_message(self) -> bool:
        return any(msg.role == MessageRole.USER for msg in self.messages)

    def touch(self):
        self.last_activity = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리 변환"""
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.last_activity.isoformat(),
            "messages": [msg.to_dict() for msg in self.messages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        """딕셔너리에서 생성"""
        return cls(
            id=data["id"],
            name=data.get("name", DEFAULT_CHAT_NAME),
            last_activity=datetime.fromisoformat(data.get("timestamp", datetime.now().isoformat())),
            messages=[ChatMessage.from_dict(m) for m in data.get("messages", [])],
        )


# ===================
# Streaming
# ===================

@dataclass
class StreamFrame:
    """SSE 디코더가 생성하는 프레임 단위"""
    event: str
    data: Any


@dataclass
class TextDelta:
    """어시스턴트 응답 텍스트 조각"""
    text: str


@dataclass
class ActionRequest:
    """스트림에 포함된 액션 요청 (예: sign_transaction)"""
    kind: str
    payload: Any


@dataclass
class StreamError:
    """스트림 도중 백엔드가 보낸 에러 이벤트"""
    message: str


NormalizedEvent = Union[TextDelta, ActionRequest, StreamError]


# ===================
# Wire models
# ===================

class ExecuteConfig(BaseModel):
    """실행 설정 (클라이언트 서명 모드)"""
    mode: str = "client"
    signer_wallet_address: str


class ChatRequest(BaseModel):
    """채팅 API 요청 바디"""
    message: str
    user_id: str = "default-user"
    stream: bool = True
    execute_config: ExecuteConfig


class ChatResult(BaseModel):
    """비스트리밍 응답 정규화 결과"""
    message: str = ""
    session_id: str = ""
    message_id: str = ""
    actions: List[Dict[str, Any]] = Field(default_factory=list)
