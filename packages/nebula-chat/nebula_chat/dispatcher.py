"""
Action Dispatcher

스트림에서 추출된 액션(트랜잭션 서명 요청)을 외부 서명자에게 전달
- 서명자는 호출 시점에 주입 (전역 지갑 상태 없음)
- fire-and-forget: 텍스트 스트림은 서명 결과를 기다리지 않음
- 종료 결과(제출/취소/실패)는 어시스턴트 메시지로 보고
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Set, Union
import asyncio
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import TransactionFailure
from .protocol import ACTION_KINDS
from .types import ActionRequest

logger = logging.getLogger(__name__)

WEI_PER_ETH = Decimal(10) ** 18
WEI_PER_GWEI = Decimal(10) ** 9


@dataclass(frozen=True)
class NetworkInfo:
    """네트워크 표시 정보"""
    name: str
    symbol: str
    explorer: str = ""


NETWORKS: Dict[int, NetworkInfo] = {
    1: NetworkInfo("Ethereum Mainnet", "ETH", "https://etherscan.io"),
    11155111: NetworkInfo("Sepolia Testnet", "SEP", "https://sepolia.etherscan.io"),
    5: NetworkInfo("Goerli Testnet", "GTH", "https://goerli.etherscan.io"),
    137: NetworkInfo("Polygon", "MATIC", "https://polygonscan.com"),
    80001: NetworkInfo("Mumbai Testnet", "MATIC", "https://mumbai.polygonscan.com"),
    56: NetworkInfo("BNB Smart Chain", "BNB", "https://bscscan.com"),
    43114: NetworkInfo("Avalanche", "AVAX", "https://snowtrace.io"),
    42161: NetworkInfo("Arbitrum One", "ETH", "https://arbiscan.io"),
    10: NetworkInfo("Optimism", "ETH", "https://optimistic.etherscan.io"),
}


def get_network(chain_id: int) -> NetworkInfo:
    """체인 ID → 네트워크 정보 (미등록 체인은 기본값)"""
    return NETWORKS.get(chain_id) or NetworkInfo(f"Unknown Network ({chain_id})", "ETH")


def format_wei(wei: Union[str, int]) -> str:
    """wei 값을 ETH (아주 작은 값은 Gwei) 문자열로 변환"""
    try:
        amount = Decimal(int(str(wei), 0))
    except (ValueError, InvalidOperation):
        logger.warning(f"Could not format wei value: {wei!r}")
        return "0"

    eth = amount / WEI_PER_ETH
    if 0 < eth < Decimal("0.0001"):
        return f"{format((amount / WEI_PER_GWEI).normalize(), 'f')} Gwei"
    return format(eth.normalize(), "f")


class TransactionRequest(BaseModel):
    """sign_transaction 페이로드 ({to, value, data, chainId})"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    to: Optional[str] = None
    value: str = "0"
    data: str = "0x"
    chain_id: int = Field(alias="chainId")

    @field_validator("value", mode="before")
    @classmethod
    def _value_to_str(cls, v):
        return str(v) if v is not None else "0"

    @classmethod
    def from_action(cls, action: ActionRequest) -> Optional["TransactionRequest"]:
        """ActionRequest 페이로드 파싱 (형식이 다르면 None)"""
        if not isinstance(action.payload, dict):
            return None
        try:
            return cls.model_validate(action.payload)
        except ValidationError as e:
            logger.warning(f"Unrecognized transaction payload: {e}")
            return None


class TransactionKind(str, Enum):
    """트랜잭션 유형"""
    TRANSFER = "transfer"
    CONTRACT_INTERACTION = "contract_interaction"
    CONTRACT_DEPLOYMENT = "contract_deployment"


@dataclass
class TransactionDescription:
    """서명 화면 표시용 설명"""
    kind: TransactionKind
    network: NetworkInfo
    value: str
    needs_network_switch: bool = False

    def __str__(self) -> str:
        if self.kind == TransactionKind.CONTRACT_DEPLOYMENT:
            return f"Contract deployment on {self.network.name}"
        if self.kind == TransactionKind.CONTRACT_INTERACTION:
            return f"Contract interaction on {self.network.name}"
        return f"Transfer of {self.value} {self.network.symbol} on {self.network.name}"


def describe_transaction(
    request: TransactionRequest,
    current_chain_id: Optional[int] = None,
) -> TransactionDescription:
    """
    트랜잭션 분류

    Args:
        request: 트랜잭션 요청
        current_chain_id: 지갑이 현재 연결된 체인 (네트워크 전환 필요 여부 판단)
    """
    is_interaction = bool(request.data) and request.data != "0x"
    if is_interaction and not request.to:
        kind = TransactionKind.CONTRACT_DEPLOYMENT
    elif is_interaction:
        kind = TransactionKind.CONTRACT_INTERACTION
    else:
        kind = TransactionKind.TRANSFER

    return TransactionDescription(
        kind=kind,
        network=get_network(request.chain_id),
        value=format_wei(request.value),
        needs_network_switch=current_chain_id is not None and current_chain_id != request.chain_id,
    )


class TransactionStatus(str, Enum):
    """서명 결과 상태"""
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class TransactionOutcome:
    """서명자가 보고하는 종료 결과"""
    status: TransactionStatus
    tx_hash: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def submitted(cls, tx_hash: Optional[str] = None) -> "TransactionOutcome":
        return cls(status=TransactionStatus.SUBMITTED, tx_hash=tx_hash)

    @classmethod
    def cancelled(cls) -> "TransactionOutcome":
        return cls(status=TransactionStatus.CANCELLED)

    @classmethod
    def failed(cls, reason: str) -> "TransactionOutcome":
        return cls(status=TransactionStatus.FAILED, reason=reason)

    def to_message(self, request: Optional[TransactionRequest] = None) -> str:
        """채팅 메시지 본문"""
        if self.status == TransactionStatus.SUBMITTED:
            text = "Transaction submitted"
            if request is not None:
                network = get_network(request.chain_id)
                text += f" on {network.name}"
                if self.tx_hash and network.explorer:
                    return f"{text}: [{self.tx_hash}]({network.explorer}/tx/{self.tx_hash})"
            return f"{text}: `{self.tx_hash}`" if self.tx_hash else f"{text}."
        if self.status == TransactionStatus.CANCELLED:
            return "Transaction cancelled."
        return f"Transaction failed: {self.reason or 'Unknown error'}"


Signer = Callable[[ActionRequest], Awaitable[TransactionOutcome]]
Notify = Callable[[str, str], None]


class ActionDispatcher:
    """
    액션 디스패처

    사용 예시:
        dispatcher = ActionDispatcher(notify=session.post_notice)

        async def wallet_signer(action: ActionRequest) -> TransactionOutcome:
            tx_hash = await wallet.send_transaction(action.payload)
            return TransactionOutcome.submitted(tx_hash)

        dispatcher.dispatch(action, chat_id, signer=wallet_signer)
    """

    def __init__(self, notify: Optional[Notify] = None):
        self.notify = notify
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """진행 중인 서명 요청 수"""
        return len(self._tasks)

    def dispatch(
        self,
        action: ActionRequest,
        conversation_id: str,
        signer: Optional[Signer],
    ) -> asyncio.Task:
        """
        액션 전달 (즉시 반환)

        Args:
            action: 정규화된 액션 (서명자에게 그대로 전달)
            conversation_id: 결과 메시지를 추가할 대화
            signer: 현재 연결된 지갑의 서명 함수

        Returns:
            결과(TransactionOutcome)를 반환하는 Task
        """
        logger.info(f"Dispatching action: kind={action.kind}, conversation={conversation_id}")
        task = asyncio.ensure_future(self._run(action, conversation_id, signer))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        action: ActionRequest,
        conversation_id: str,
        signer: Optional[Signer],
    ) -> TransactionOutcome:
        request = TransactionRequest.from_action(action)
        try:
            if action.kind not in ACTION_KINDS:
                raise TransactionFailure(f"Unsupported action: {action.kind}")
            if signer is None:
                raise TransactionFailure("No connected wallet")
            outcome = await signer(action)
        except TransactionFailure as e:
            outcome = TransactionOutcome.failed(e.reason)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Signer raised an error for {action.kind}")
            outcome = TransactionOutcome.failed(str(e) or type(e).__name__)

        logger.info(f"Action {action.kind} finished: {outcome.status.value}")
        self._report(conversation_id, outcome.to_message(request))
        return outcome

    def _report(self, conversation_id: str, text: str):
        if self.notify is None:
            logger.warning(f"No notify callback, dropping action result: {text}")
            return
        self.notify(conversation_id, text)

    async def wait_idle(self):
        """진행 중인 서명 요청이 모두 끝날 때까지 대기"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
