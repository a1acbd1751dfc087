"""
Unit tests for the server-rendered page extractor and the JSON API decoders.
"""

import json
from datetime import datetime, timezone

import pytest

from tiktok_scraper.errors import InvalidResponse, NotFound
from tiktok_scraper.parsing import (
    decode_challenge_detail,
    decode_challenge_items,
    decode_search_page,
    extract_universal_data,
    extract_user,
)
from tiktok_scraper.parsing.ssr import SSR_TAG_OPEN


def profile_page(data) -> bytes:
    payload = data if isinstance(data, bytes) else json.dumps(data).encode()
    return b"<html><head>" + SSR_TAG_OPEN + payload + b"</script></head></html>"


USER_DATA = {
    "__DEFAULT_SCOPE__": {
        "webapp.user-detail": {
            "userInfo": {
                "user": {
                    "id": "6789",
                    "uniqueId": "someone",
                    "nickname": "Some One",
                    "secUid": "MS4wLjAB",
                    "verified": True,
                    "signature": "hello",
                    "avatarLarger": "https://p16.example/avatar.jpeg",
                },
                "stats": {
                    "followerCount": 1200,
                    "followingCount": "35",
                    "videoCount": 48,
                    "heartCount": 0,
                    "heart": 98000,
                    "diggCount": 7,
                },
            }
        }
    }
}


def video_item(video_id="1", plays=100):
    return {
        "id": video_id,
        "desc": "a video #cats",
        "createTime": 1700000000,
        "author": {"id": "6789", "uniqueId": "someone"},
        "stats": {"playCount": plays, "diggCount": "10", "commentCount": 2, "shareCount": None},
    }


class TestUniversalData:

    def test_extracts_user(self):
        author = extract_user(extract_universal_data(profile_page(USER_DATA)))

        assert author.username == "someone"
        assert author.id == "6789"
        assert author.follower_count == 1200
        assert author.following_count == 35
        assert author.heart_count == 98000
        assert author.verified
        assert author.bio == "hello"

    def test_missing_marker(self):
        with pytest.raises(InvalidResponse, match="script tag not found"):
            extract_universal_data(b"<html><body>nothing here</body></html>")

    def test_missing_closing_tag(self):
        with pytest.raises(InvalidResponse, match="closing script tag"):
            extract_universal_data(SSR_TAG_OPEN + b'{"a": 1}')

    def test_unparsable_payload_is_chained(self):
        with pytest.raises(InvalidResponse, match="unparsable") as exc_info:
            extract_universal_data(profile_page(b"{not json"))
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    def test_empty_user_is_not_found(self):
        data = {"__DEFAULT_SCOPE__": {"webapp.user-detail": {"userInfo": {"user": {}}}}}
        with pytest.raises(NotFound):
            extract_user(data)

    def test_missing_scope_is_not_found(self):
        with pytest.raises(NotFound):
            extract_user({"__DEFAULT_SCOPE__": {}})


class TestSearchPage:

    def test_decodes_items_and_cursor(self):
        body = json.dumps({
            "item_list": [video_item("1"), video_item("2", plays="250")],
            "has_more": 1,
            "cursor": 20,
        }).encode()
        page = decode_search_page(body)

        assert [v.id for v in page.records] == ["1", "2"]
        assert page.records[1].views == 250
        assert page.records[0].likes == 10
        assert page.records[0].shares == 0
        assert page.records[0].created_at == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert page.next_cursor == 20

    def test_last_page(self):
        page = decode_search_page(b'{"item_list": [], "has_more": false, "cursor": 40}')
        assert page.next_cursor is None
        assert not page.has_more

    def test_missing_item_list_is_empty(self):
        assert decode_search_page(b'{"has_more": 0}').records == []

    @pytest.mark.parametrize("body", [b"", b"not json", b"[1, 2]"])
    def test_malformed_bodies(self, body):
        with pytest.raises(InvalidResponse):
            decode_search_page(body)

    def test_out_of_range_timestamp_is_dropped(self):
        body = json.dumps({
            "item_list": [{"id": "1", "createTime": 10 ** 20}], "has_more": 0,
        }).encode()
        assert decode_search_page(body).records[0].created_at is None

    def test_infinite_counter_counts_as_zero(self):
        body = b'{"item_list": [{"id": "1", "stats": {"playCount": Infinity}}], "has_more": 0}'
        assert decode_search_page(body).records[0].views == 0

    @pytest.mark.parametrize("cursor", ["Infinity", "-Infinity", "NaN"])
    def test_non_finite_cursor(self, cursor):
        body = ('{"item_list": [], "has_more": 1, "cursor": %s}' % cursor).encode()
        with pytest.raises(InvalidResponse, match="cursor"):
            decode_search_page(body)

    def test_item_list_not_array(self):
        with pytest.raises(InvalidResponse, match="not an array"):
            decode_search_page(b'{"item_list": {"a": 1}}')


class TestChallenge:

    def test_challenge_items_use_camel_case_fields(self):
        body = json.dumps({"itemList": [video_item()], "hasMore": True, "cursor": "35"}).encode()
        page = decode_challenge_items(body)

        assert len(page.records) == 1
        assert page.next_cursor == 35

    def test_challenge_items_string_flag(self):
        page = decode_challenge_items(b'{"itemList": [], "hasMore": "0", "cursor": 70}')
        assert page.next_cursor is None

    def test_challenge_detail(self):
        body = json.dumps({
            "challengeInfo": {
                "challenge": {"id": "42", "title": "cats", "desc": "cat videos"},
                "stats": {"videoCount": 1000, "viewCount": "5000000"},
            }
        }).encode()
        challenge = decode_challenge_detail(body)

        assert challenge.id == "42"
        assert challenge.title == "cats"
        assert challenge.view_count == 5000000

    def test_challenge_without_id_is_not_found(self):
        with pytest.raises(NotFound, match="challenge not found"):
            decode_challenge_detail(b'{"challengeInfo": {"challenge": {}}}')
