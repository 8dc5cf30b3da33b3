"""
Transport Client

채팅 백엔드 HTTP 클라이언트
- 업스트림 API 직접 호출 또는 같은 오리진 릴레이 경유
- stream=True: 바이트 스트림 (ChatStream), stream=False: 정규화된 ChatResult
"""

from typing import AsyncIterator, Optional, Dict, Any, Tuple, Union
import json
import logging

import httpx

from .config import NebulaConfig
from .credentials import Credentials, CredentialStore, resolve_credentials
from .errors import MissingCredentialError, UpstreamError
from .types import ChatRequest, ChatResult, ExecuteConfig

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def redact_address(address: Optional[str]) -> str:
    """로그용 지갑 주소 마스킹 (앞 6자리만 유지)"""
    if not address:
        return ""
    return f"{address[:6]}..."


def normalize_response(data: Dict[str, Any]) -> ChatResult:
    """
    비스트리밍 응답 정규화

    지원 형태:
        {"result": {"message", "session_id", "message_id"}}
        {"message", "session_id"?, "request_id"?, "actions"?}
        {"actions": [...]}
    """
    actions = data.get("actions") or []

    result = data.get("result")
    if isinstance(result, dict):
        return ChatResult(
            message=result.get("message") or "",
            session_id=result.get("session_id") or "",
            message_id=result.get("message_id") or "",
            actions=actions,
        )

    return ChatResult(
        message=data.get("message") or "",
        session_id=data.get("session_id") or "",
        message_id=data.get("request_id") or "",
        actions=actions,
    )


class ChatStream:
    """
    열린 스트리밍 응답

    async with / async for 모두 지원하며, 어떤 경로로 종료되든
    내부 HTTP 응답을 해제합니다.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_bytes()

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """원시 바이트 청크"""
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self):
        """스트림 해제"""
        if not self._closed:
            self._closed = True
            await self._response.aclose()

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


class NebulaClient:
    """채팅 백엔드 클라이언트"""

    def __init__(
        self,
        config: Optional[NebulaConfig] = None,
        credential_store: Optional[CredentialStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or NebulaConfig()
        self.credential_store = credential_store
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _ensure_client(self):
        """HTTP 클라이언트 초기화"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                transport=self._transport,
            )

    async def close(self):
        """클라이언트 종료"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "NebulaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _resolve_target(
        self,
        message: str,
        wallet_address: str,
        user_id: str,
        stream: bool,
        credentials: Optional[Credentials],
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """요청 대상 URL, 헤더, 바디 결정"""
        creds = resolve_credentials(credentials, self.credential_store, self.config)
        headers = {"Content-Type": "application/json"}
        if stream:
            headers["Accept"] = "text/event-stream"

        if creds is not None:
            headers.update(creds.headers())
            body = ChatRequest(
                message=message,
                user_id=user_id,
                stream=stream,
                execute_config=ExecuteConfig(signer_wallet_address=wallet_address),
            ).model_dump()
            return self.config.api_url, headers, body

        if self.config.relay_url:
            # 릴레이가 서버 측 키를 사용
            body = {
                "message": message,
                "walletAddress": wallet_address,
                "userId": user_id,
                "stream": stream,
            }
            return self.config.relay_url, headers, body

        raise MissingCredentialError()

    async def _send(
        self,
        message: str,
        wallet_address: str,
        user_id: Optional[str],
        stream: bool,
        credentials: Optional[Credentials],
    ) -> httpx.Response:
        """요청 전송 (2xx가 아니면 UpstreamError)"""
        user_id = user_id or self.config.default_user_id
        url, headers, body = self._resolve_target(message, wallet_address, user_id, stream, credentials)

        await self._ensure_client()

        logger.info(
            f"Sending request to Nebula API: url={url}, user_id={user_id}, "
            f"stream={stream}, wallet={redact_address(wallet_address)}"
        )

        request = self._client.build_request("POST", url, json=body, headers=headers)
        response = await self._client.send(request, stream=True)

        logger.info(
            f"Nebula API response: status={response.status_code}, "
            f"status_text={response.reason_phrase}, "
            f"content_type={response.headers.get('content-type', '')}"
        )

        if response.is_success:
            return response

        try:
            error_body = (await response.aread()).decode("utf-8", errors="replace")
        finally:
            await response.aclose()

        logger.error(f"Nebula API error: {response.status_code} {error_body[:500]}")
        raise UpstreamError(response.status_code, response.reason_phrase, error_body)

    async def open_stream(
        self,
        message: str,
        wallet_address: str,
        user_id: Optional[str] = None,
        credentials: Optional[Credentials] = None,
    ) -> ChatStream:
        """
        SSE 스트림 연결

        Returns:
            ChatStream (호출자가 반드시 닫거나 끝까지 소비)
        """
        response = await self._send(message, wallet_address, user_id, True, credentials)
        return ChatStream(response)

    async def request_json(
        self,
        message: str,
        wallet_address: str,
        user_id: Optional[str] = None,
        credentials: Optional[Credentials] = None,
    ) -> Dict[str, Any]:
        """비스트리밍 요청 (원본 JSON)"""
        response = await self._send(message, wallet_address, user_id, False, credentials)
        try:
            raw = await response.aread()
        finally:
            await response.aclose()

        try:
            data = json.loads(raw)
        except ValueError:
            text = raw.decode("utf-8", errors="replace")
            logger.error(f"Invalid JSON from Nebula API: {text[:200]}")
            raise UpstreamError(response.status_code, "Invalid JSON response", text)

        if not isinstance(data, dict):
            raise UpstreamError(response.status_code, "Unexpected response shape", raw.decode("utf-8", errors="replace"))
        return data

    async def chat(
        self,
        message: str,
        wallet_address: str,
        user_id: Optional[str] = None,
        credentials: Optional[Credentials] = None,
    ) -> ChatResult:
        """비스트리밍 채팅"""
        data = await self.request_json(message, wallet_address, user_id, credentials)
        return normalize_response(data)

    async def send(
        self,
        message: str,
        wallet_address: str,
        user_id: Optional[str] = None,
        stream: bool = True,
        credentials: Optional[Credentials] = None,
    ) -> Union[ChatStream, ChatResult]:
        """
        채팅 요청

        Args:
            message: 사용자 메시지
            wallet_address: 서명 지갑 주소
            user_id: 사용자 ID
            stream: 스트리밍 여부
            credentials: 호출별 자격 증명

        Returns:
            stream=True면 ChatStream, 아니면 ChatResult
        """
        if stream:
            return await self.open_stream(message, wallet_address, user_id, credentials)
        return await self.chat(message, wallet_address, user_id, credentials)

    async def check_connection(self, credentials: Credentials) -> bool:
        """자격 증명으로 최소 요청을 보내 연결 확인"""
        try:
            await self.request_json("Hello", ZERO_ADDRESS, "test-user", credentials)
        except UpstreamError as e:
            logger.warning(f"Nebula API connection test failed: {e.status}")
            return False
        logger.info("Nebula API connection test succeeded")
        return True
