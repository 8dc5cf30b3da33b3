"""
Tests for nebula_chat.titles -- conversation title heuristic.
"""

import pytest

from nebula_chat.titles import TITLE_MATCHERS, generate_title, truncate_words
from nebula_chat.types import DEFAULT_CHAT_NAME


class TestGenerateTitle:

    @pytest.mark.parametrize("message, expected", [
        ("deploy an ERC20 token named MyToken", "MyToken ERC20"),
        ("deploy a token to vitalik.eth", "New token"),
        ("Send 0.01 ETH to Vitalik.eth", "vitalik.eth"),
        ("What's in wallet 0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045?", "0xd8dA...6045"),
        ("What is the price of ETH on Base", "ETH on Base"),
        ("what's the gas on Polygon", "Polygon Info"),
        ("how do I write a smart contract?", "Dev: write a smart contract"),
    ])
    def test_matchers(self, message, expected):
        assert generate_title(message) == expected

    def test_short_message_kept_whole(self):
        assert generate_title("What is the ETH price?") == "What is the ETH price?"

    def test_long_message_cut_on_word_boundary(self):
        title = generate_title("Tell me something interesting about the history of Ethereum")
        assert title == "Tell me something interesting"

    @pytest.mark.parametrize("message", ["", "   ", "x" * 45])
    def test_falls_back_to_default(self, message):
        assert generate_title(message) == DEFAULT_CHAT_NAME

    def test_matcher_order(self):
        names = [matcher.name for matcher in TITLE_MATCHERS]
        assert names[:3] == ["deployment", "ens", "address"]
        assert names[-1] == "transfer"


class TestTruncateWords:

    def test_exact_boundary(self):
        assert truncate_words("aaaa bbbb", limit=4) == "aaaa"

    def test_keeps_raw_whitespace(self):
        assert truncate_words("a   b\n c") == "a   b\n c"

    def test_cut_keeps_raw_prefix(self):
        assert truncate_words("ab  cd\tefgh", limit=8) == "ab  cd"

    def test_strips_outer_whitespace(self):
        assert truncate_words("  hello  ") == "hello"
