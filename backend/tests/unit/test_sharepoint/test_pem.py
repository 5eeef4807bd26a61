"""Tests for private key normalisation."""

import pytest

from app.core.sharepoint.pem import (
    PEM_FOOTER,
    PEM_HEADER,
    PEM_LINE_LENGTH,
    normalize_private_key,
)

BODY = "MIIEvQIBADANBgkqhkiG9w0BAQEFAASC" * 5  # 160 base64 chars


class TestNormalizePrivateKey:
    """Tests for normalize_private_key."""

    @pytest.mark.parametrize("raw", [None, ""])
    def test_empty_input_is_returned_unchanged(self, raw):
        assert normalize_private_key(raw) == raw

    def test_single_line_key_is_rewrapped(self):
        raw = f"{PEM_HEADER} {BODY} {PEM_FOOTER}"

        result = normalize_private_key(raw)

        lines = result.split("\n")
        assert lines[0] == PEM_HEADER
        assert lines[1] == BODY[:64]
        assert lines[2] == BODY[64:128]
        assert lines[3] == BODY[128:]
        assert lines[4] == PEM_FOOTER
        assert result.endswith(PEM_FOOTER + "\n")

    def test_body_lines_are_at_most_64_columns(self):
        result = normalize_private_key(BODY * 3)

        body_lines = result.strip().split("\n")[1:-1]
        assert all(len(line) <= PEM_LINE_LENGTH for line in body_lines)
        assert all(len(line) == PEM_LINE_LENGTH for line in body_lines[:-1])

    def test_key_without_envelope_gets_one(self):
        result = normalize_private_key(BODY)

        assert result.startswith(PEM_HEADER + "\n")
        assert result.endswith(PEM_FOOTER + "\n")

    def test_crlf_tabs_and_spaces_are_removed(self):
        raw = f"{PEM_HEADER}\r\n{BODY[:50]}\t {BODY[50:]}\r\n{PEM_FOOTER}\r\n"

        result = normalize_private_key(raw)

        assert "\r" not in result
        assert "".join(result.strip().split("\n")[1:-1]) == BODY

    def test_is_idempotent(self):
        once = normalize_private_key(f"  {PEM_HEADER}{BODY}{PEM_FOOTER}  ")
        assert normalize_private_key(once) == once
