"""
Response Summary Extractor

어시스턴트 응답 텍스트에서 트랜잭션/배포/조회 요약 추출
- best-effort 정규식 추출
- 트랜잭션 → 배포 → 조회 순서로 시도, 첫 번째 결과 사용
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Union
import re

from .types import MessageCategory


@dataclass
class TransactionSummary:
    """전송 요약"""
    recipient: str
    amount: str
    token: str
    network: str = "Ethereum"
    status: str = "pending"  # pending, confirmed, failed
    hash: Optional[str] = None
    type: str = "transaction"


@dataclass
class DeploymentSummary:
    """배포 요약"""
    contract_type: str
    contract_name: Optional[str] = None
    network: str = "Ethereum"
    address: Optional[str] = None
    status: str = "pending"
    type: str = "deployment"


@dataclass
class QuerySummary:
    """조회 요약"""
    subject: str
    data: Dict[str, Any] = field(default_factory=dict)
    type: str = "query"


ResponseSummary = Union[TransactionSummary, DeploymentSummary, QuerySummary]


_NETWORK_PATTERNS = [
    re.compile(r"on\s+(?:the\s+)?([A-Za-z]+)(?:\s+network|\s+chain|\s+blockchain)", re.IGNORECASE),
    re.compile(r"network(?:\s+is|:)?\s+([A-Za-z]+)", re.IGNORECASE),
]
_STATUS_PATTERN = re.compile(r"status(?:\s+is|:)?\s+([A-Za-z]+)", re.IGNORECASE)


def _first_match(patterns, content: str) -> Optional[re.Match]:
    for pattern in patterns:
        match = pattern.search(content)
        if match:
            return match
    return None


def _network(content: str) -> str:
    match = _first_match(_NETWORK_PATTERNS, content)
    return match.group(1) if match else "Ethereum"


def _status(content: str, confirmed_words, failed_words) -> str:
    """상태 추출 (명시된 status 우선, 없으면 키워드로 추정)"""
    match = _STATUS_PATTERN.search(content)
    if match:
        return match.group(1).lower()
    if any(word in content for word in confirmed_words):
        return "confirmed"
    if any(word in content for word in failed_words):
        return "failed"
    return "pending"


def extract_transaction_summary(content: str) -> Optional[TransactionSummary]:
    """트랜잭션 정보 추출"""
    if not re.search(r"transfer|send|transaction|sent", content, re.IGNORECASE):
        return None

    recipient = _first_match([
        re.compile(r"to (?:the address(?:\s+resolved\s+from\s+the\s+ENS\s+name)?\s+`?([^`\s]+)`?|`?([^`\s]+)`?)", re.IGNORECASE),
        re.compile(r"recipient(?:\s+is|:)?\s+`?([^`\n,.]+)`?", re.IGNORECASE),
    ], content)
    amount = _first_match([
        re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*([A-Z]{2,})\b"),
        re.compile(r"amount(?:\s+of)?\s+([0-9.]+)\s*([A-Z]{2,})", re.IGNORECASE),
    ], content)

    if not (recipient and amount):
        return None

    tx_hash = _first_match([
        re.compile(r"transaction\s+(?:hash|id)(?:\s+is|:)?\s+`?(?:0x)?([a-fA-F0-9]+)`?", re.IGNORECASE),
        re.compile(r"0x([a-fA-F0-9]{64})"),
    ], content)

    return TransactionSummary(
        recipient=next((g for g in recipient.groups() if g), "Unknown"),
        amount=amount.group(1) or "0",
        token=amount.group(2) or "ETH",
        network=_network(content),
        status=_status(content, ("successful", "confirmed"), ("failed", "error")),
        hash=f"0x{tx_hash.group(1).lower()}" if tx_hash else None,
    )


def extract_deployment_summary(content: str) -> Optional[DeploymentSummary]:
    """배포 정보 추출"""
    if not re.search(r"deploy|contract|deployed", content, re.IGNORECASE):
        return None

    contract_type = _first_match([
        re.compile(r"deploy(?:ed|ing)?(?:\s+a|:)?\s+([A-Za-z0-9]+)(?:\s+contract|\s+token)", re.IGNORECASE),
        re.compile(r"contract\s+type(?:\s+is|:)?\s+([A-Za-z0-9]+)", re.IGNORECASE),
    ], content)
    if not contract_type:
        return None

    contract_name = _first_match([
        re.compile(r"(?:contract|token)\s+(?:name|called|named)(?:\s+is|:)?\s+['\"]?([^'\".,\n]+)['\"]?", re.IGNORECASE),
        re.compile(r"named\s+['\"]?([^'\".,\n]+)['\"]?", re.IGNORECASE),
    ], content)
    address = _first_match([
        re.compile(r"(?:contract|token)\s+address(?:\s+is|:)?\s+`?(?:0x)?([a-fA-F0-9]+)`?", re.IGNORECASE),
        re.compile(r"address(?:\s+is|:)?\s+`?(?:0x)?([a-fA-F0-9]+)`?", re.IGNORECASE),
    ], content)

    return DeploymentSummary(
        contract_type=contract_type.group(1) or "Contract",
        contract_name=contract_name.group(1).strip() if contract_name else None,
        network=_network(content),
        address=f"0x{address.group(1).lower()}" if address else None,
        status=_status(content, ("successful", "deployed"), ("failed",)),
    )


def extract_query_summary(content: str) -> Optional[QuerySummary]:
    """조회 정보 추출"""
    if not re.search(r"balance|holdings|supply|price|market cap|volume", content, re.IGNORECASE):
        return None

    subject = _first_match([
        re.compile(r"(?:the|your)\s+([A-Za-z0-9]+)(?:\s+balance|\s+holdings|\s+supply|\s+price)", re.IGNORECASE),
        re.compile(r"information\s+(?:about|for)\s+([A-Za-z0-9.]+)", re.IGNORECASE),
    ], content)
    if not subject:
        return None

    data: Dict[str, Any] = {}

    balance = re.search(r"balance(?:\s+is|:)?\s+([0-9][0-9.,]*)(?:\s+([A-Z]{2,}))?", content, re.IGNORECASE)
    if balance:
        data["balance"] = balance.group(1)
        if balance.group(2):
            data["currency"] = balance.group(2)

    price = re.search(r"price(?:\s+is|:)?\s+\$?([0-9][0-9.,]*)", content, re.IGNORECASE)
    if price:
        data["price"] = price.group(1)

    supply = re.search(r"supply(?:\s+is|:)?\s+([0-9][0-9.,]*)", content, re.IGNORECASE)
    if supply:
        data["supply"] = supply.group(1)

    address = re.search(r"address(?:\s+is|:)?\s+(?:0x)?([a-fA-F0-9]+)", content, re.IGNORECASE)
    if address:
        data["address"] = f"0x{address.group(1).lower()}"

    return QuerySummary(subject=subject.group(1), data=data)


def extract_summary(content: str) -> Optional[ResponseSummary]:
    """
    응답 요약 추출

    Args:
        content: 어시스턴트 메시지 본문

    Returns:
        TransactionSummary / DeploymentSummary / QuerySummary 또는 None
    """
    for extractor in (extract_transaction_summary, extract_deployment_summary, extract_query_summary):
        summary = extractor(content)
        if summary:
            return summary
    return None


_SUMMARY_CATEGORIES = {
    "transaction": MessageCategory.TRANSFER,
    "deployment": MessageCategory.DEPLOY,
    "query": MessageCategory.QUERY,
}


def summarize_category(content: str) -> MessageCategory:
    """응답 본문 → 메시지 분류 (요약이 없으면 GENERAL)"""
    summary = extract_summary(content)
    if summary is None:
        return MessageCategory.GENERAL
    return _SUMMARY_CATEGORIES[summary.type]
