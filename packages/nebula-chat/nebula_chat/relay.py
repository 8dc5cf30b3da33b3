"""
Relay Service

같은 오리진 릴레이 (FastAPI)
- 서버 측 API 키로 업스트림 채팅 API 호출
- SSE 스트림은 그대로 전달

실행:
    uvicorn --factory nebula_chat.relay:create_relay_app --port 8000
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import logging

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from .config import NebulaConfig
from .credentials import Credentials, is_valid_key_format, resolve_credentials
from .errors import MissingCredentialError, NebulaChatError
from .transport import ChatStream, NebulaClient, redact_address

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # nginx 버퍼링 비활성화
}


class RelayRequest(BaseModel):
    """릴레이 요청"""
    message: Optional[str] = None
    walletAddress: Optional[str] = None
    userId: str = "default-user"
    stream: bool = True
    apiKey: Optional[str] = None


class ConnectionTestRequest(BaseModel):
    """API 키 연결 테스트 요청"""
    apiKey: Optional[str] = None
    clientId: Optional[str] = None


router = APIRouter(prefix="/api", tags=["nebula"])


def get_upstream_client(request: Request) -> NebulaClient:
    """업스트림 클라이언트 (앱 단위 공유)"""
    return request.app.state.nebula_client


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _relay_bytes(chat_stream: ChatStream) -> AsyncIterator[bytes]:
    async with chat_stream:
        async for chunk in chat_stream:
            yield chunk


@router.post("/nebula")
async def relay_chat(
    body: RelayRequest,
    client: NebulaClient = Depends(get_upstream_client),
):
    """채팅 요청 릴레이 (스트리밍/비스트리밍)"""
    if not body.message or not body.walletAddress:
        logger.error("Missing required fields: message and walletAddress")
        return _error("message and walletAddress are required", 400)

    explicit = Credentials(secret_key=body.apiKey) if body.apiKey else None
    credentials = resolve_credentials(explicit, client.credential_store, client.config)
    if credentials is None:
        logger.error("API key is missing")
        return _error(str(MissingCredentialError()), 400)

    logger.info(
        f"Relaying request: user_id={body.userId}, stream={body.stream}, "
        f"wallet={redact_address(body.walletAddress)}"
    )

    try:
        if body.stream:
            chat_stream = await client.open_stream(body.message, body.walletAddress, body.userId, credentials)
            return StreamingResponse(
                _relay_bytes(chat_stream),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )

        data = await client.request_json(body.message, body.walletAddress, body.userId, credentials)
        return JSONResponse(data)

    except (NebulaChatError, httpx.HTTPError) as e:
        logger.error(f"Error in Nebula relay: {e}")
        return _error(str(e) or "Failed to process request", 500)


@router.post("/test-connection")
async def test_connection(
    body: ConnectionTestRequest,
    client: NebulaClient = Depends(get_upstream_client),
):
    """API 키 유효성 확인"""
    if not body.apiKey or not body.clientId:
        return _error("API Key and Client ID are required", 400)

    # 형식만 검사, 실제 유효성은 업스트림 요청으로 확인
    if not is_valid_key_format(body.apiKey):
        return _error("Invalid API Key format", 400)

    try:
        ok = await client.check_connection(Credentials(secret_key=body.apiKey, client_id=body.clientId))
    except (NebulaChatError, httpx.HTTPError) as e:
        logger.error(f"Nebula API test error: {e}")
        return _error("Could not connect to Nebula API. Please try again later.", 500)

    if not ok:
        return _error("API key validation failed. Please check your credentials.", 401)
    return {"success": True}


@router.get("/health", tags=["health"])
async def health():
    """Liveness Probe"""
    return {"status": "healthy"}


def create_relay_app(
    client: Optional[NebulaClient] = None,
    config: Optional[NebulaConfig] = None,
) -> FastAPI:
    """
    릴레이 앱 생성

    Args:
        client: 업스트림 클라이언트 (테스트에서 주입)
        config: 설정 (기본값: 환경 변수)
    """
    if client is None:
        # 릴레이는 항상 업스트림 직접 호출
        client = NebulaClient(config or NebulaConfig.from_env(relay_url=None))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.nebula_client.close()

    app = FastAPI(
        title="Nebula Chat Relay",
        description="Same-origin relay for the Nebula chat API (SSE pass-through)",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.nebula_client = client
    app.include_router(router)
    return app
