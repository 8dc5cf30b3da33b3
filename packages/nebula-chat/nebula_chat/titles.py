"""
Conversation Title Heuristic

첫 사용자 메시지로부터 대화 제목 생성
- 순서가 정해진 독립 매처 목록, 첫 번째 매치 우선
- 매처 순서를 바꾸면 생성되는 제목이 달라지므로 순서 유지 필요
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern
import re

from .types import DEFAULT_CHAT_NAME

MAX_TITLE_PREFIX = 30

_QUOTES = "'\"“”"
_TRAILING_WORD = re.compile(r"\s+\S*$")


@dataclass(frozen=True)
class TitleMatcher:
    """제목 매처"""
    name: str
    pattern: Pattern
    format: Callable[[re.Match], Optional[str]]

    def apply(self, message: str) -> Optional[str]:
        match = self.pattern.search(message)
        if not match:
            return None
        title = self.format(match)
        return title.strip() if title else None


def _deployment(match: re.Match) -> str:
    contract_type = match.group("type").strip()
    contract_name = match.group("name")
    if contract_name:
        return f"{contract_name.strip()} {contract_type}"
    return f"New {contract_type}"


def _short_address(match: re.Match) -> str:
    address = match.group(0)
    return f"{address[:6]}...{address[-4:]}"


def _token(match: re.Match) -> str:
    token, chain = match.group(1), match.group(2)
    return f"{token} on {chain}" if chain else token


TITLE_MATCHERS: List[TitleMatcher] = [
    # 1. 컨트랙트 배포
    TitleMatcher(
        "deployment",
        re.compile(
            r"\bdeploy\s+(?:an?\s+)?(?P<type>[^\n.]+?)(?:\s+(?:contract|token))?"
            rf"(?:\s+(?:named|called)\s+[{_QUOTES}]?(?P<name>[^{_QUOTES}.\n]+?)[{_QUOTES}]?)?"
            r"\s*(?:$|[.\n]|\s(?:on|to|with)\s)",
            re.IGNORECASE,
        ),
        _deployment,
    ),
    # 2. ENS 이름
    TitleMatcher(
        "ens",
        re.compile(r"\b\w+\.eth\b", re.IGNORECASE),
        lambda m: m.group(0).lower(),
    ),
    # 3. 16진수 주소
    TitleMatcher(
        "address",
        re.compile(r"0x[a-fA-F0-9]{40}"),
        _short_address,
    ),
    # 4. 컨트랙트 분석
    TitleMatcher(
        "contract_analysis",
        re.compile(
            r"\b(?:what|explain|analyze|show|get)\s+(?:is|are|the)?\s*"
            r"(?:functions?|standards?|interface|details?)\s+(?:of|for|in|at|about)?\s+"
            r"(?:contract\s+)?([^?.,\n]+)",
            re.IGNORECASE,
        ),
        lambda m: f"Analyze {m.group(1).strip()}",
    ),
    # 5. 토큰 조사 / 가격
    TitleMatcher(
        "token",
        re.compile(
            r"\b(?:price|address|supply|balance)\s+(?:of\s+)?([A-Z0-9]+)(?:\s+(?:on|in|at)\s+([A-Za-z]+))?",
            re.IGNORECASE,
        ),
        _token,
    ),
    # 6. 트랜잭션 분석
    TitleMatcher(
        "transaction",
        re.compile(r"\b(?:transaction|tx)\s+(?:details?|info|about)?\s+(?:for\s+)?(\w+)", re.IGNORECASE),
        lambda m: f"Tx {m.group(1)[:8]}...",
    ),
    # 7. 네트워크/체인 조회
    TitleMatcher(
        "chain",
        re.compile(r"\b(?:gas|block|status|info)\s+(?:on|for|in|at)\s+([A-Za-z]+)", re.IGNORECASE),
        lambda m: f"{m.group(1)} Info",
    ),
    # 8. 지갑 조회
    TitleMatcher(
        "wallet",
        re.compile(r"\b(?:balance|holdings?|nfts?|tokens?)\s+(?:of|in|for)\s+([^?.,\n]+)", re.IGNORECASE),
        lambda m: f"{m.group(1).strip()} Portfolio",
    ),
    # 9. 민팅 등 컨트랙트 상호작용
    TitleMatcher(
        "mint",
        re.compile(
            r"\b(?:mint|create|generate)\s+(?:an?\s+)?([^\n.,]+?)(?:\s+(?:on|to|with)\s|[.,\n]|$)",
            re.IGNORECASE,
        ),
        lambda m: f"Mint {m.group(1).strip()}",
    ),
    # 10. 개발 질문
    TitleMatcher(
        "dev",
        re.compile(r"\bhow\s+(?:to|do\s+i)\s+([^?.,\n]+)", re.IGNORECASE),
        lambda m: f"Dev: {m.group(1)[:30].strip()}",
    ),
    # 11. 전송/결제 (폴백)
    TitleMatcher(
        "transfer",
        re.compile(r"\b(?:send|transfer|pay)(?:\s+[\d.]+\s*\w+)?\s+to\s+([^,.\s]+)", re.IGNORECASE),
        lambda m: m.group(1),
    ),
]


def truncate_words(text: str, limit: int = MAX_TITLE_PREFIX) -> str:
    """원문 앞부분을 limit 글자 이내에서 단어 경계로 자르기 (내부 공백은 그대로 유지)"""
    text = text.strip()
    if len(text) <= limit:
        return text

    head = text[:limit]
    if text[limit].isspace():
        return head.rstrip()

    match = _TRAILING_WORD.search(head)
    if not match:
        return ""
    return head[:match.start()]


def generate_title(message: str) -> str:
    """
    대화 제목 생성

    Args:
        message: 첫 사용자 메시지

    Returns:
        매처 결과 또는 단어 경계로 자른 메시지 앞부분
    """
    for matcher in TITLE_MATCHERS:
        title = matcher.apply(message)
        if title:
            return title

    return truncate_words(message) or DEFAULT_CHAT_NAME
