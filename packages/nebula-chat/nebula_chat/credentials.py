"""
Credentials

API 키 인메모리 전달 및 해석
- 디스크에 저장하지 않음 (세션 종료 시 clear)
- 해석 순서: 호출별 명시 키 → 인메모리 저장소 → 프로세스 설정(환경 변수)
"""

from dataclasses import dataclass
from typing import Optional
import logging

from .config import NebulaConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """API 자격 증명"""
    secret_key: str
    client_id: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(secret_key='***', client_id={self.client_id!r})"

    def headers(self) -> dict:
        """업스트림 요청 헤더"""
        headers = {"x-secret-key": self.secret_key}
        if self.client_id:
            headers["x-client-id"] = self.client_id
        return headers


def is_valid_key_format(secret_key: Optional[str]) -> bool:
    """키 형식 검사 (실제 유효성은 업스트림에서 확인)"""
    return bool(secret_key) and secret_key.startswith("sk") and len(secret_key) >= 20


class CredentialStore:
    """
    인메모리 자격 증명 저장소

    설정 화면에서 입력받은 키를 프로세스 메모리에만 보관합니다.
    """

    def __init__(self):
        self._credentials: Optional[Credentials] = None

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def is_configured(self) -> bool:
        return self._credentials is not None

    def set(self, secret_key: str, client_id: Optional[str] = None):
        """자격 증명 설정"""
        self._credentials = Credentials(secret_key=secret_key, client_id=client_id)
        logger.info("API credentials configured (in-memory)")

    def clear(self):
        """자격 증명 삭제 (로그아웃/세션 종료)"""
        self._credentials = None


def resolve_credentials(
    explicit: Optional[Credentials] = None,
    store: Optional[CredentialStore] = None,
    config: Optional[NebulaConfig] = None,
) -> Optional[Credentials]:
    """
    자격 증명 해석

    Args:
        explicit: 호출별 명시 자격 증명
        store: 인메모리 저장소
        config: 프로세스 레벨 설정

    Returns:
        Credentials 또는 None
    """
    if explicit is not None:
        return explicit
    if store is not None and store.credentials is not None:
        return store.credentials
    if config is not None and config.secret_key:
        return Credentials(secret_key=config.secret_key, client_id=config.client_id)
    return None
