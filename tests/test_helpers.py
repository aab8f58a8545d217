import base64
import json
from datetime import datetime

import pytest

from auth.jwt import ACCESS, REFRESH, create_access_token, create_refresh_token, decode_token
from repos.helper import after_cursor, decode_cursor, encode_cursor
from services import drive_links
from services.progress import compute_percent


@pytest.mark.parametrize("done, total, expected", [
    (0, 3, 0),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),   # 12.5 rounds up
    (3, 8, 38),   # 37.5 rounds up
    (3, 3, 100),
])
def test_compute_percent_rounds_half_up(done, total, expected):
    lessons = [f"l{i}" for i in range(total)]
    assert compute_percent(lessons[:done], lessons) == expected


def test_compute_percent_edges():
    assert compute_percent(["gone"], []) == 0
    assert compute_percent(["gone", "a"], ["a", "b"]) == 50
    assert compute_percent(["a", "a"], ["a", "b"]) == 50


def test_cursor_encodes_sort_key():
    ts = datetime(2024, 3, 1, 12, 30, 15, 123000)
    cursor = encode_cursor(ts, "64b000000000000000000001")
    assert decode_cursor(cursor) == (ts, "64b000000000000000000001")


def test_after_cursor_clause():
    assert after_cursor(None) == {}
    ts = datetime(2024, 3, 1)
    clause = after_cursor(encode_cursor(ts, "uid-1"), id_is_object_id=False)
    assert clause == {"$or": [
        {"created_at": {"$lt": ts}},
        {"created_at": ts, "_id": {"$lt": "uid-1"}},
    ]}


def _raw_cursor(payload):
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


@pytest.mark.parametrize("cursor", [
    "garbage",
    "eyJ4IjogMX0",
    _raw_cursor([1, 2]),
    _raw_cursor({"t": "2024-01-01T00:00:00", "id": 123}),
    _raw_cursor({"t": "2024-01-01T00:00:00", "id": None}),
    _raw_cursor({"t": 17, "id": "64b000000000000000000001"}),
    _raw_cursor({"t": "2024-01-01T00:00:00+02:00", "id": "64b000000000000000000001"}),
])
def test_bad_cursor(cursor):
    with pytest.raises(ValueError):
        decode_cursor(cursor)
    with pytest.raises(ValueError):
        after_cursor(cursor)


def test_cursor_with_non_object_id():
    with pytest.raises(ValueError):
        after_cursor(_raw_cursor({"t": "2024-01-01T00:00:00", "id": "not-an-oid"}))


@pytest.mark.parametrize("url, file_id, preview", [
    ("https://drive.google.com/file/d/FILE1/view?usp=sharing", "FILE1", "https://drive.google.com/file/d/FILE1/preview"),
    ("https://drive.google.com/open?id=FILE2", "FILE2", "https://drive.google.com/file/d/FILE2/preview"),
    ("https://docs.google.com/document/d/DOC3/edit", "DOC3", "https://docs.google.com/document/d/DOC3/preview"),
    ("https://docs.google.com/presentation/d/P4/edit#slide=1", "P4", "https://docs.google.com/presentation/d/P4/preview"),
])
def test_drive_links(url, file_id, preview):
    assert drive_links.is_drive_url(url)
    assert drive_links.extract_file_id(url) == file_id
    assert drive_links.preview_url(url) == preview


@pytest.mark.parametrize("url, kind", [
    ("https://docs.google.com/document/d/x/edit", "document"),
    ("https://example.com/notes.PDF", "pdf"),
    ("https://example.com/photo.jpeg?size=large", "image"),
    ("https://example.com/clip.mp4", "video"),
    ("https://example.com/download", "file"),
])
def test_detect_type(url, kind):
    assert drive_links.detect_type(url) == kind


def test_non_drive_links_have_no_preview():
    url = "https://example.com/file/d/abc/view"
    assert not drive_links.is_drive_url(url)


def test_tokens_carry_subject_and_type():
    access = decode_token(create_access_token("uid-1", "a@example.com"))
    refresh = decode_token(create_refresh_token("uid-1", "a@example.com"))
    assert (access["sub"], access["type"]) == ("uid-1", ACCESS)
    assert refresh["type"] == REFRESH
    assert access["jti"] != refresh["jti"]


def test_tampered_token_is_invalid():
    token = create_access_token("uid-1", "a@example.com")
    with pytest.raises(ValueError, match="Invalid token"):
        decode_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))
