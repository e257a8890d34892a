"""
Unit tests for the request line reader and header helpers.
"""

import io

import pytest

from tinyweb.http.reader import (
    LINE_LIMIT,
    MAX_CONTENT_LENGTH,
    read_line,
    discard_headers,
    read_content_length,
)


def stream(data: bytes) -> io.BufferedReader:
    """Buffered stream over data, with peek() like a socket makefile."""
    return io.BufferedReader(io.BytesIO(data))


class TestReadLine:
    """Tests for read_line()."""

    def test_crlf_is_collapsed(self):
        """CRLF terminator is stripped as one unit."""
        s = stream(b"GET / HTTP/1.1\r\n")
        assert read_line(s, LINE_LIMIT) == b"GET / HTTP/1.1"
        assert s.read() == b""

    @pytest.mark.parametrize("terminator", [b"\n", b"\r"])
    def test_bare_terminators(self, terminator: bytes):
        """A lone LF or CR also ends the line."""
        s = stream(b"GET / HTTP/1.1" + terminator + b"next")
        assert read_line(s) == b"GET / HTTP/1.1"
        assert s.read() == b"next"

    def test_bare_cr_keeps_following_byte(self):
        """The byte after a lone CR is not swallowed."""
        s = stream(b"first\rsecond\r\n")
        assert read_line(s) == b"first"
        assert read_line(s) == b"second"

    def test_blank_line(self):
        """An empty line comes back as empty bytes."""
        s = stream(b"\r\nafter")
        assert read_line(s) == b""
        assert s.read() == b"after"

    def test_eof_terminates(self):
        """End of stream ends a line without a terminator."""
        assert read_line(stream(b"partial")) == b"partial"
        assert read_line(stream(b"")) == b""

    def test_long_line_is_truncated(self):
        """Anything past max_len stays in the stream for the next read."""
        s = stream(b"abcdefgh\r\n")
        assert read_line(s, 5) == b"abcde"
        assert read_line(s, 5) == b"fgh"

    def test_successive_lines(self):
        """Lines are read one at a time in order."""
        s = stream(b"GET / HTTP/1.1\r\nHost: x\r\n\r\n")
        assert read_line(s) == b"GET / HTTP/1.1"
        assert read_line(s) == b"Host: x"
        assert read_line(s) == b""


class TestDiscardHeaders:
    """Tests for discard_headers()."""

    def test_stops_after_blank_line(self):
        """Body bytes after the blank line are left untouched."""
        s = stream(b"Host: x\r\nAccept: */*\r\n\r\nBODY")
        discard_headers(s)
        assert s.read() == b"BODY"

    def test_no_headers(self):
        s = stream(b"\r\n")
        discard_headers(s)
        assert s.read() == b""

    def test_eof_before_blank_line(self):
        """A client that stops mid-headers does not hang the drain."""
        s = stream(b"Host: x\r\n")
        discard_headers(s)
        assert s.read() == b""


class TestReadContentLength:
    """Tests for read_content_length()."""

    def test_finds_length_and_positions_at_body(self):
        s = stream(b"Host: x\r\nContent-Length: 5\r\nAccept: */*\r\n\r\nhello")
        assert read_content_length(s) == 5
        assert s.read() == b"hello"

    def test_header_name_is_case_insensitive(self):
        s = stream(b"content-length: 12\r\n\r\n")
        assert read_content_length(s) == 12

    def test_zero(self):
        assert read_content_length(stream(b"Content-Length: 0\r\n\r\n")) == 0

    def test_missing_header(self):
        """No Content-Length: None, and the headers are consumed."""
        s = stream(b"Host: x\r\n\r\nBODY")
        assert read_content_length(s) is None
        assert s.read() == b"BODY"

    @pytest.mark.parametrize("value", [b"abc", b"-5", b"5 ", b"", b"1.5"])
    def test_unparseable_value(self, value: bytes):
        s = stream(b"Content-Length: " + value + b"\r\n\r\nBODY")
        assert read_content_length(s) is None
        assert s.read() == b"BODY"

    @pytest.mark.parametrize("value", [b"2147483648", b"99999999999999999999"])
    def test_value_beyond_signed_32_bits(self, value: bytes):
        """Lengths that do not fit an i32 are rejected like garbage."""
        s = stream(b"Content-Length: " + value + b"\r\n\r\nBODY")
        assert read_content_length(s) is None
        assert s.read() == b"BODY"

    def test_largest_accepted_value(self):
        s = stream(b"Content-Length: 2147483647\r\n\r\n")
        assert read_content_length(s) == MAX_CONTENT_LENGTH == 2147483647

    def test_value_is_taken_after_sixteen_characters(self):
        """Without the space after the colon the first digit is lost."""
        s = stream(b"Content-Length:42\r\n\r\n")
        assert read_content_length(s) == 2
