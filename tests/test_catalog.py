from unittest.mock import MagicMock

import pytest
import requests

from hls.catalog import (
    SECRET_HEADER,
    CatalogClient,
    build_callback_payload,
    find_matching_record,
    notify_completion,
    reconcile,
)
from hls.exceptions import NotifyError, ReconcileError

from .conftest import json_response

SRC = "sermons/123_title.mp4"
ENCODED_URL = "https://firebasestorage.googleapis.com/v0/b/church-app/o/sermons%2F123_title.mp4?alt=media&token=t"


def _client(session=None):
    return CatalogClient("http://catalog.test/api/", "s3cret", timeout=5, session=session or MagicMock())


class TestFindMatchingRecord:
    def test_storage_path_exact(self):
        records = [{"id": 1, "storagePath": "sermons/other.mp4"}, {"id": 2, "storagePath": SRC}]
        assert find_matching_record(records, SRC) == "2"

    def test_legacy_storage_path_field(self):
        assert find_matching_record([{"id": "abc", "firebaseStoragePath": SRC}], SRC) == "abc"

    def test_legacy_field_matches_when_storage_path_is_stale(self):
        records = [{"id": "abc", "storagePath": "sermons/old_name.mp4", "firebaseStoragePath": SRC}]
        assert find_matching_record(records, SRC) == "abc"

    def test_encoded_path_in_video_url(self):
        records = [{"id": 7, "title": "x"}, {"id": 9, "videoUrl": ENCODED_URL}]
        assert find_matching_record(records, SRC) == "9"

    def test_filename_case_insensitive(self):
        records = [{"id": 4, "videoUrl": "https://res.cloudinary.com/demo/video/upload/v1/123_TITLE.MP4"}]
        assert find_matching_record(records, SRC) == "4"

    def test_query_string_is_ignored(self):
        records = [{"id": 4, "videoUrl": "https://example.test/watch?file=123_title.mp4"}]
        assert find_matching_record(records, SRC) is None

    def test_first_match_wins(self):
        records = [
            {"id": "first", "videoUrl": "https://cdn.test/123_title.mp4"},
            {"id": "second", "storagePath": SRC},
        ]
        assert find_matching_record(records, SRC) == "first"

    @pytest.mark.parametrize("bad_id", [None, ""])
    def test_match_without_id_is_rejected(self, bad_id):
        records = [{"id": bad_id, "storagePath": SRC}, {"id": 2, "storagePath": SRC}]
        assert find_matching_record(records, SRC) is None

    def test_zero_is_a_usable_id(self):
        assert find_matching_record([{"id": 0, "storagePath": SRC}], SRC) == "0"

    @pytest.mark.parametrize("payload", [{"sermons": []}, None, "nope"])
    def test_non_list_payload(self, payload):
        assert find_matching_record(payload, SRC) is None

    def test_junk_entries_are_skipped(self):
        assert find_matching_record([None, 3, {"id": 1, "videoUrl": 12}], SRC) is None


class TestReconcile:
    def test_match_on_first_attempt_does_not_sleep(self):
        session = MagicMock()
        session.get.return_value = json_response([{"id": 5, "storagePath": SRC}])
        sleep = MagicMock()

        assert reconcile(_client(session), SRC, sleep=sleep) == "5"
        session.get.assert_called_once_with("http://catalog.test/api/sermons", timeout=5)
        sleep.assert_not_called()

    def test_record_appears_later(self):
        session = MagicMock()
        session.get.side_effect = [
            json_response([]),
            requests.ConnectionError("refused"),
            json_response([{"id": "s1", "videoUrl": ENCODED_URL}]),
        ]
        sleep = MagicMock()
        assert reconcile(_client(session), SRC, sleep=sleep) == "s1"
        assert session.get.call_count == 3
        assert sleep.call_count == 2

    def test_gives_up_after_six_attempts(self):
        session = MagicMock()
        session.get.return_value = json_response([{"id": 1, "storagePath": "sermons/other.mp4"}])
        sleep = MagicMock()
        with pytest.raises(ReconcileError):
            reconcile(_client(session), SRC, attempts=6, interval=5.0, sleep=sleep)
        assert session.get.call_count == 6
        # waits only between attempts
        assert sleep.call_count == 5
        assert sum(c.args[0] for c in sleep.call_args_list) <= 6 * 5

    def test_http_errors_and_bad_json_are_retried(self):
        bad_json = json_response(None)
        bad_json.json.side_effect = ValueError("no json")
        session = MagicMock()
        session.get.side_effect = [json_response([], status_code=502), bad_json, json_response([{"id": 3, "storagePath": SRC}])]
        assert reconcile(_client(session), SRC, sleep=lambda s: None) == "3"


class TestNotify:
    def test_payload_omits_missing_fields(self):
        assert build_callback_payload("https://m") == {"hlsUrl": "https://m"}
        assert build_callback_payload("https://m", 12.5, "https://p") == {
            "hlsUrl": "https://m",
            "durationSec": 12.5,
            "thumbnails": {"poster": "https://p"},
        }

    def test_callback_request(self):
        session = MagicMock()
        session.post.return_value = json_response({}, status_code=200)
        assert notify_completion(_client(session), "id/1", "https://m", duration_sec=60.0) is True

        args, kwargs = session.post.call_args
        assert args[0] == "http://catalog.test/api/sermons/id%2F1/hls-callback"
        assert kwargs["headers"] == {SECRET_HEADER: "s3cret"}
        assert kwargs["json"] == {"hlsUrl": "https://m", "durationSec": 60.0}

    def test_non_2xx_raises_from_client(self):
        session = MagicMock()
        session.post.return_value = json_response({}, status_code=403)
        with pytest.raises(NotifyError) as exc:
            _client(session).hls_callback("1", {"hlsUrl": "https://m"})
        assert exc.value.status_code == 403
        assert exc.value.body == "error body"

    def test_failure_is_reported_not_raised(self):
        session = MagicMock()
        session.post.return_value = json_response({}, status_code=500)
        assert notify_completion(_client(session), "1", "https://m") is False

    def test_network_error_is_reported_not_raised(self):
        session = MagicMock()
        session.post.side_effect = requests.Timeout("slow")
        assert notify_completion(_client(session), "1", "https://m") is False
        assert session.post.call_count == 1


def test_client_from_settings(settings):
    settings.SERVER_API_URL = "http://catalog.test/api"
    settings.HLS_CALLBACK_SECRET = "x"
    settings.HLS_HTTP_TIMEOUT = 12
    client = CatalogClient.from_settings()
    assert client.base_url == "http://catalog.test/api"
    assert client.timeout == 12
    assert isinstance(client.session, requests.Session)
