from unittest.mock import patch

import pytest

from early_access.core.exceptions import RandomSourceError, ServiceUnavailable
from early_access.core.tokens import (
    CODE_ALPHABET,
    generate_code,
    generate_tracking_token,
)


class TestCodeGeneration:
    """Test one-time code generation."""

    def test_code_length_and_alphabet(self):
        for _ in range(200):
            code = generate_code()
            assert len(code) == 6
            assert all(ch in CODE_ALPHABET for ch in code)

    def test_alphabet_has_no_ambiguous_characters(self):
        for ch in "IO01":
            assert ch not in CODE_ALPHABET
        assert len(set(CODE_ALPHABET)) == len(CODE_ALPHABET)

    def test_codes_vary(self):
        codes = {generate_code() for _ in range(50)}
        assert len(codes) > 1

    def test_random_source_failure(self):
        with patch("early_access.core.tokens.secrets.choice", side_effect=OSError("no entropy")):
            with pytest.raises(RandomSourceError) as exc_info:
                generate_code()
        assert isinstance(exc_info.value, ServiceUnavailable)
        assert exc_info.value.status_code == 500


class TestTrackingToken:
    """Test tracking token generation."""

    def test_token_is_url_safe_and_43_chars(self):
        token = generate_tracking_token()
        assert len(token) == 43
        assert all(ch.isalnum() or ch in "-_" for ch in token)

    def test_tokens_are_unique(self):
        tokens = {generate_tracking_token() for _ in range(100)}
        assert len(tokens) == 100

    def test_random_source_failure(self):
        with patch(
            "early_access.core.tokens.secrets.token_urlsafe",
            side_effect=NotImplementedError,
        ):
            with pytest.raises(RandomSourceError):
                generate_tracking_token()
