"""Tests for token generation and canonicalization."""
import re

from app.services.tokens.generator import canonical_token, generate_token

HEX32 = re.compile(r"^[0-9A-F]{32}$")


def test_generate_token_format():
    for _ in range(200):
        assert HEX32.match(generate_token())


def test_generate_token_is_random():
    values = {generate_token() for _ in range(500)}
    assert len(values) == 500


def test_canonical_token_strips_and_uppercases():
    assert canonical_token("  abcdef0123  ") == "ABCDEF0123"


def test_canonical_token_none():
    assert canonical_token(None) == ""
