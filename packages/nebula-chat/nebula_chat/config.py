"""
Config

채팅 클라이언트/저장소 설정
"""

from typing import Optional
import os

from pydantic import BaseModel, Field


DEFAULT_API_URL = "https://nebula-api.thirdweb.com/chat"
DEFAULT_STORAGE_KEY = "nebula-chat-storage"


class NebulaConfig(BaseModel):
    """채팅 설정"""
    # API 설정
    api_url: str = DEFAULT_API_URL
    relay_url: Optional[str] = None  # 같은 오리진 릴레이 (예: http://localhost:8000/api/nebula)

    # 프로세스 레벨 폴백 자격 증명
    secret_key: Optional[str] = Field(default=None, repr=False)
    client_id: Optional[str] = None

    default_user_id: str = "default-user"

    # None = 타임아웃 없음 (취소는 ChatSession.cancel 사용)
    timeout: Optional[float] = None

    # 로컬 저장소 설정
    storage_dir: str = "./.nebula-chat"
    storage_key: str = DEFAULT_STORAGE_KEY

    @classmethod
    def from_env(cls, **overrides) -> "NebulaConfig":
        """환경 변수에서 설정 로드"""
        timeout = os.environ.get("NEBULA_TIMEOUT")
        values = {
            "api_url": os.environ.get("NEBULA_API_URL", DEFAULT_API_URL),
            "relay_url": os.environ.get("NEBULA_RELAY_URL") or None,
            "secret_key": os.environ.get("NEBULA_API_KEY") or None,
            "client_id": os.environ.get("NEBULA_CLIENT_ID") or None,
            "timeout": float(timeout) if timeout else None,
            "storage_dir": os.environ.get("NEBULA_CHAT_STORAGE_DIR", "./.nebula-chat"),
        }
        values.update(overrides)
        return cls(**values)
