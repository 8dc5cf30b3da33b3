"""
Errors

채팅 코어에서 사용하는 예외 정의
"""

from typing import Optional


class NebulaChatError(Exception):
    """nebula_chat 예외 기본 클래스"""
    pass


class MissingCredentialError(NebulaChatError):
    """사용 가능한 API 키가 없을 때 발생 (네트워크 요청 전)"""

    def __init__(self, message: str = "API key is required. Please set up your API keys in the application."):
        super().__init__(message)


class UpstreamError(NebulaChatError):
    """채팅 백엔드가 2xx 이외의 응답을 반환했을 때 발생"""

    def __init__(self, status: int, status_text: str, body: str):
        self.status = status
        self.status_text = status_text
        self.body = body
        super().__init__(f"Nebula API request failed: {status} {status_text} - {body}")


class StreamProtocolError(NebulaChatError):
    """스트림 도중 error 이벤트를 받았을 때 발생 (해당 턴만 중단)"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MalformedFrameError(NebulaChatError):
    """파싱할 수 없는 SSE data 라인 (로그 후 건너뜀)"""

    def __init__(self, line: str, reason: Optional[str] = None):
        self.line = line
        self.reason = reason
        super().__init__(f"Malformed SSE data line ({reason}): {line[:200]}")


class TransactionFailure(NebulaChatError):
    """서명자(지갑)가 트랜잭션 실패를 보고할 때 발생"""

    def __init__(self, reason: str = "Unknown error"):
        self.reason = reason
        super().__init__(reason)


class StoreNotReadyError(NebulaChatError):
    """저장소 로드(hydration) 전에 변경 작업을 시도할 때 발생"""
    pass


class ConversationNotFoundError(NebulaChatError):
    """존재하지 않는 대화 ID"""
    pass
