"""
Tests for nebula_chat.summary -- best-effort response summaries.
"""

from nebula_chat.summary import (
    DeploymentSummary,
    QuerySummary,
    TransactionSummary,
    extract_deployment_summary,
    extract_summary,
    summarize_category,
)
from nebula_chat.types import MessageCategory


class TestExtractSummary:

    def test_transaction(self):
        content = (
            "I sent 0.5 ETH to vitalik.eth on the Sepolia network. "
            "The transaction status is confirmed."
        )

        summary = extract_summary(content)

        assert isinstance(summary, TransactionSummary)
        assert summary.recipient == "vitalik.eth"
        assert summary.amount == "0.5"
        assert summary.token == "ETH"
        assert summary.network == "Sepolia"
        assert summary.status == "confirmed"
        assert summary.hash is None

    def test_transaction_hash(self):
        tx_hash = "ab" * 32
        content = f"Sent 1 USDC to bob.eth. Transaction hash: 0x{tx_hash.upper()}"

        summary = extract_summary(content)

        assert summary.hash == f"0x{tx_hash}"

    def test_deployment(self):
        content = (
            "I deployed a ERC20 contract named MyToken on the Base network. "
            "The contract address is 0xABCDEF."
        )

        summary = extract_summary(content)

        assert isinstance(summary, DeploymentSummary)
        assert summary.contract_type == "ERC20"
        assert summary.contract_name.startswith("MyToken")
        assert summary.network == "Base"
        assert summary.address == "0xabcdef"
        assert summary.status == "confirmed"

    def test_deployment_requires_type(self):
        assert extract_deployment_summary("This contract looks fine.") is None

    def test_query(self):
        summary = extract_summary("Your ETH balance is 1.5 ETH.")

        assert isinstance(summary, QuerySummary)
        assert summary.subject == "ETH"
        assert summary.data == {"balance": "1.5", "currency": "ETH"}

    def test_plain_text(self):
        assert extract_summary("Hello there, how can I help?") is None


class TestSummarizeCategory:

    def test_categories(self):
        assert summarize_category("I sent 0.5 ETH to vitalik.eth.") == MessageCategory.TRANSFER
        assert summarize_category("I deployed a ERC20 contract named MyToken.") == MessageCategory.DEPLOY
        assert summarize_category("Your ETH balance is 1.5 ETH.") == MessageCategory.QUERY
        assert summarize_category("Hello there") == MessageCategory.GENERAL
