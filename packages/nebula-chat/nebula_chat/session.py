"""
Chat Session

사용자 입력 제출 경계
- 전송 → SSE 디코딩 → 이벤트 해석 → 대화 저장소 병합
- 전송/프로토콜 오류는 여기서 잡아 어시스턴트 에러 메시지 하나로 변환
- 자동 재시도 없음
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple
import asyncio
import logging

import httpx

from .credentials import Credentials
from .dispatcher import ActionDispatcher, Signer
from .errors import NebulaChatError, StreamProtocolError
from .protocol import aiter_events, build_action
from .sse import aiter_frames
from .store import ConversationStore
from .summary import summarize_category
from .transport import NebulaClient, redact_address
from .types import ActionRequest, ChatMessage, ChatResult, MessageCategory, StreamError, TextDelta

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Sorry, there was an error processing your request."


class TurnStatus(str, Enum):
    """턴 결과 상태"""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TurnResult:
    """제출 결과"""
    conversation_id: str
    status: TurnStatus
    text: str = ""
    actions: List[ActionRequest] = field(default_factory=list)
    error: Optional[Exception] = None
    result: Optional[ChatResult] = None

    @property
    def ok(self) -> bool:
        return self.status == TurnStatus.COMPLETED


class ChatSession:
    """
    채팅 세션

    사용 예시:
        store = ConversationStore.from_config(config).load()
        session = ChatSession(store, NebulaClient(config))

        result = await session.submit(
            "send 0.001 ETH to vitalik.eth",
            wallet_address="0x...",
            signer=wallet_signer,
            on_delta=lambda text: print(text, end="", flush=True),
        )
    """

    def __init__(
        self,
        store: ConversationStore,
        client: NebulaClient,
        dispatcher: Optional[ActionDispatcher] = None,
    ):
        self.store = store
        self.client = client
        self.dispatcher = dispatcher or ActionDispatcher()
        if self.dispatcher.notify is None:
            self.dispatcher.notify = self.post_notice

        self.is_streaming = False
        self._turn_conversation_id: Optional[str] = None
        self._pending_notices: List[Tuple[str, str]] = []
        self._turn_task: Optional[asyncio.Task] = None
        self._cancel_requested = False

    # ===================
    # Notices
    # ===================

    def post_notice(self, conversation_id: str, text: str):
        """
        어시스턴트 알림 메시지 추가 (액션 결과 등)

        스트리밍 중인 대화라면 스트림 메시지가 끊기지 않도록 턴 종료 후 추가합니다.
        """
        if self.is_streaming and conversation_id == self._turn_conversation_id:
            self._pending_notices.append((conversation_id, text))
            return
        self._append_notice(conversation_id, text)

    def _append_notice(self, conversation_id: str, text: str):
        if conversation_id not in self.store:
            logger.warning(f"Dropping notice for deleted conversation: {conversation_id}")
            return
        self.store.append_message(conversation_id, ChatMessage.assistant(text))

    def _flush_notices(self):
        notices, self._pending_notices = self._pending_notices, []
        for conversation_id, text in notices:
            self._append_notice(conversation_id, text)

    # ===================
    # Submit
    # ===================

    def cancel(self) -> bool:
        """
        진행 중인 턴 취소

        Returns:
            취소할 턴이 있었는지 여부
        """
        if self._turn_task is None or self._turn_task.done():
            return False
        self._cancel_requested = True
        self._turn_task.cancel()
        return True

    async def submit(
        self,
        message: str,
        wallet_address: str,
        conversation_id: Optional[str] = None,
        signer: Optional[Signer] = None,
        stream: bool = True,
        on_delta: Optional[Callable[[str], None]] = None,
        user_id: Optional[str] = None,
        credentials: Optional[Credentials] = None,
    ) -> TurnResult:
        """
        사용자 메시지 제출

        Args:
            message: 사용자 메시지
            wallet_address: 서명 지갑 주소
            conversation_id: 대상 대화 (없으면 활성 대화)
            signer: 트랜잭션 서명 함수 (UI 레이어에서 주입)
            stream: 스트리밍 여부
            on_delta: 텍스트 조각 콜백 (점진적 렌더링)
            user_id: 사용자 ID (기본값: 지갑 주소)
            credentials: 호출별 자격 증명

        Returns:
            TurnResult
        """
        conversation_id = conversation_id or self.store.ensure_active()
        self.store.append_message(conversation_id, ChatMessage.user(message))

        turn = TurnResult(conversation_id=conversation_id, status=TurnStatus.COMPLETED)
        logger.info(
            f"Submitting turn: conversation={conversation_id}, stream={stream}, "
            f"wallet={redact_address(wallet_address)}"
        )

        self.is_streaming = True
        self._turn_conversation_id = conversation_id
        self._cancel_requested = False
        self._turn_task = asyncio.ensure_future(self._run_turn(
            turn, message, wallet_address, signer, stream, on_delta,
            user_id or wallet_address, credentials,
        ))

        try:
            await self._turn_task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            logger.info(f"Turn cancelled: conversation={conversation_id}")
            turn.status = TurnStatus.CANCELLED
        except (NebulaChatError, httpx.HTTPError) as e:
            turn.status = TurnStatus.FAILED
            turn.error = e
            if conversation_id not in self.store:
                logger.warning(f"Conversation deleted during turn, dropping reply: {conversation_id}")
            else:
                logger.error(f"Turn failed: {type(e).__name__}: {e}")
                self.store.append_message(
                    conversation_id,
                    ChatMessage.assistant(f"{ERROR_MESSAGE}\n\n{e}", category=MessageCategory.ERROR),
                )
        else:
            # 알림 메시지가 붙기 전이므로 마지막 메시지가 이번 응답
            if turn.text and conversation_id in self.store:
                self.store.set_last_category(conversation_id, summarize_category(turn.text))
        finally:
            self.is_streaming = False
            self._turn_conversation_id = None
            self._turn_task = None
            self._flush_notices()

        return turn

    async def _run_turn(
        self,
        turn: TurnResult,
        message: str,
        wallet_address: str,
        signer: Optional[Signer],
        stream: bool,
        on_delta: Optional[Callable[[str], None]],
        user_id: str,
        credentials: Optional[Credentials],
    ):
        if not stream:
            result = await self.client.chat(message, wallet_address, user_id, credentials)
            turn.result = result
            if result.message:
                turn.text = result.message
                self.store.append_message(turn.conversation_id, ChatMessage.assistant(result.message))
                if on_delta:
                    on_delta(result.message)
            for item in result.actions:
                action = build_action(item)
                if action is not None:
                    self._route_action(turn, action, signer)
            return

        chat_stream = await self.client.open_stream(message, wallet_address, user_id, credentials)
        async with chat_stream:
            async for event in aiter_events(aiter_frames(chat_stream)):
                if isinstance(event, TextDelta):
                    self.store.append_message(
                        turn.conversation_id,
                        ChatMessage.assistant(event.text),
                        merge=True,
                    )
                    turn.text += event.text
                    if on_delta:
                        on_delta(event.text)
                elif isinstance(event, ActionRequest):
                    self._route_action(turn, event, signer)
                elif isinstance(event, StreamError):
                    raise StreamProtocolError(event.message)

    def _route_action(self, turn: TurnResult, action: ActionRequest, signer: Optional[Signer]):
        turn.actions.append(action)
        self.dispatcher.dispatch(action, turn.conversation_id, signer)
