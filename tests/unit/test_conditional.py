"""Unit tests for conditional GET handling."""

from datetime import datetime, timedelta, timezone

import pytest

from peer_server.domain.http_types import HttpRequest
from peer_server.simulation.conditional import (
    ByteRange,
    UnsatisfiableRange,
    Validators,
    parse_range,
    serve_content,
    sniff_content_type,
)

BASELINE = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
VALIDATORS = Validators(BASELINE)
CONTENT = b"0123456789"
LAST_MODIFIED = "Mon, 06 May 2024 07:08:09 GMT"


def _get(headers=None, method="GET") -> HttpRequest:
    return HttpRequest(method, "/getContent/data.txt", dict(headers or {}), b"")


def _serve(headers=None, method="GET"):
    return serve_content(_get(headers, method), CONTENT, VALIDATORS)


def test_validators_truncate_to_whole_seconds():
    assert VALIDATORS.last_modified == LAST_MODIFIED
    assert VALIDATORS.etag == f'"{int(BASELINE.timestamp()):x}"'


def test_validators_are_timezone_independent():
    shifted = BASELINE.astimezone(timezone(timedelta(hours=-5)))
    assert Validators(shifted).last_modified == LAST_MODIFIED


def test_plain_get_returns_full_content_with_validators():
    response = _serve()

    assert response.status_code == 200
    assert response.body == CONTENT
    assert response.headers["Last-Modified"] == LAST_MODIFIED
    assert response.headers["ETag"] == VALIDATORS.etag
    assert response.headers["Accept-Ranges"] == "bytes"
    assert response.headers["Content-Type"] == "text/plain; charset=utf-8"


def test_if_modified_since_at_baseline_returns_304():
    response = _serve({"if-modified-since": LAST_MODIFIED})

    assert response.status_code == 304
    assert response.body == b""
    assert response.headers["ETag"] == VALIDATORS.etag


def test_if_modified_since_before_baseline_returns_content():
    response = _serve({"if-modified-since": "Mon, 06 May 2024 07:08:08 GMT"})
    assert response.status_code == 200


def test_unparseable_if_modified_since_is_ignored():
    assert _serve({"if-modified-since": "yesterday"}).status_code == 200


def test_if_none_match_with_current_etag_returns_304():
    assert _serve({"if-none-match": VALIDATORS.etag}).status_code == 304
    assert _serve({"if-none-match": f"W/{VALIDATORS.etag}"}).status_code == 304
    assert _serve({"if-none-match": "*"}).status_code == 304


def test_if_none_match_takes_precedence_over_if_modified_since():
    response = _serve(
        {"if-none-match": '"other"', "if-modified-since": LAST_MODIFIED}
    )
    assert response.status_code == 200


def test_if_none_match_on_post_fails_precondition():
    assert _serve({"if-none-match": "*"}, method="POST").status_code == 412


def test_if_match_mismatch_returns_412():
    assert _serve({"if-match": '"other"'}).status_code == 412
    assert _serve({"if-match": VALIDATORS.etag}).status_code == 200


def test_if_unmodified_since_before_baseline_returns_412():
    response = _serve({"if-unmodified-since": "Sun, 05 May 2024 00:00:00 GMT"})
    assert response.status_code == 412


def test_single_range_returns_partial_content():
    response = _serve({"range": "bytes=2-4"})

    assert response.status_code == 206
    assert response.body == b"234"
    assert response.headers["Content-Range"] == "bytes 2-4/10"


def test_suffix_range_returns_tail():
    response = _serve({"range": "bytes=-3"})
    assert response.body == b"789"
    assert response.headers["Content-Range"] == "bytes 7-9/10"


def test_unsatisfiable_range_returns_416():
    response = _serve({"range": "bytes=50-60"})

    assert response.status_code == 416
    assert response.headers["Content-Range"] == "bytes */10"


def test_multiple_ranges_return_full_content():
    response = _serve({"range": "bytes=0-1,4-5"})
    assert response.status_code == 200
    assert response.body == CONTENT


def test_if_range_mismatch_ignores_range():
    response = _serve({"range": "bytes=0-1", "if-range": '"stale"'})
    assert response.status_code == 200

    response = _serve({"range": "bytes=0-1", "if-range": LAST_MODIFIED})
    assert response.status_code == 206


def test_extra_headers_are_kept_on_every_status():
    request = _get({"if-modified-since": LAST_MODIFIED})
    response = serve_content(
        request, CONTENT, VALIDATORS, {"Cache-Control": "max-age=10"}
    )
    assert response.status_code == 304
    assert response.headers["Cache-Control"] == "max-age=10"


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("bytes=0-0", [ByteRange(0, 1)]),
        ("bytes=5-", [ByteRange(5, 5)]),
        ("bytes=8-100", [ByteRange(8, 2)]),
        ("bytes=-100", [ByteRange(0, 10)]),
        ("items=0-1", None),
        ("bytes=a-b", None),
        ("bytes=5-2", None),
        ("", None),
    ],
)
def test_parse_range(header, expected):
    assert parse_range(header, 10) == expected


def test_parse_range_on_empty_content_is_unsatisfiable():
    with pytest.raises(UnsatisfiableRange):
        parse_range("bytes=-5", 0)


@pytest.mark.parametrize(
    ("content", "media_type"),
    [
        (b'{\n   "greeting": "hello"\n}\n', "text/plain; charset=utf-8"),
        (b"", "text/plain; charset=utf-8"),
        (b"  \n<!doctype html><html>", "text/html; charset=utf-8"),
        (b"<p>short", "text/html; charset=utf-8"),
        (b"<pre>not a tag match", "text/plain; charset=utf-8"),
        (b"<?xml version=\"1.0\"?>", "text/xml; charset=utf-8"),
        (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
        (b"\xff\xfe\x00h", "text/plain; charset=utf-16le"),
        (b"data\x00\x01\x02", "application/octet-stream"),
    ],
)
def test_media_type_is_sniffed_from_the_bytes(content, media_type):
    assert sniff_content_type(content) == media_type


def test_json_file_is_served_as_plain_text():
    response = serve_content(_get(), b'{"a": 1}', VALIDATORS)
    assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
