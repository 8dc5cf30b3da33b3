"""
Local Storage

단일 기기 로컬 키-값 저장소 (브라우저 localStorage 대응)
"""

from pathlib import Path
from typing import Dict, Optional, Protocol, Union
import logging
import os
import re
import tempfile

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """키-값 저장소 인터페이스"""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """인메모리 저장소 (테스트/임시 세션용)"""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JSONFileStorage:
    """
    파일 기반 저장소

    키 하나당 JSON 파일 하나 ({directory}/{key}.json).
    쓰기는 임시 파일 작성 후 교체하므로 중간 실패 시에도 기존 내용이 유지됩니다.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe_key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)

        fd, tmp_path = tempfile.mkstemp(dir=str(self.directory), prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Persisted {key} to {path}")

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
