"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The byte-level pieces of the protocol:

    reader.py        read_line / discard_headers / read_content_length
    request.py       parse_request_line → ParsedRequest
    response.py      response_head / write_file
    status_codes.py  HTTPStatus with reason phrases

=============================================================================
"""

from .status_codes import HTTPStatus
from .reader import read_line, discard_headers, read_content_length, LINE_LIMIT
from .request import ParsedRequest, HTTPParseError, parse_request_line
from .response import response_head, write_file, CHUNK_SIZE

__all__ = [
    "HTTPStatus",
    "read_line",
    "discard_headers",
    "read_content_length",
    "LINE_LIMIT",
    "ParsedRequest",
    "HTTPParseError",
    "parse_request_line",
    "response_head",
    "write_file",
    "CHUNK_SIZE",
]
