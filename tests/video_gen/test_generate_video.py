from unittest.mock import MagicMock, patch

import pytest

from img2vid.services.errors import DownloadError, MissingCredentialError, MissingResultError
from img2vid.services.video_gen import PROGRESS_MESSAGES, generate_video_from_image

OP_NAME = "models/veo-2.0-generate-001/operations/op1"
VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc:download?alt=media"


def _mock_resp(data=None, status=200, reason="OK", content=b"", headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.reason = reason
    resp.json.return_value = data or {}
    resp.text = "body"
    resp.content = content
    resp.headers = headers or {}
    return resp


def _done(uri=VIDEO_URI):
    response = {"generateVideoResponse": {"generatedSamples": [{"video": {"uri": uri}}]}} if uri else {}
    return {"name": OP_NAME, "done": True, "response": response}


def test_requires_api_key(monkeypatch):
    monkeypatch.delenv("API_KEY", raising=False)
    with patch("img2vid.utils.veo_client.requests.post") as post, \
         patch("img2vid.utils.veo_client.requests.get") as get:
        with pytest.raises(MissingCredentialError):
            generate_video_from_image("aGk=", "image/png", "a cat walking", lambda m: None)
    post.assert_not_called()
    get.assert_not_called()


def test_polls_then_downloads(monkeypatch):
    monkeypatch.setenv("API_KEY", "key")
    progress = []
    with patch("img2vid.utils.veo_client.requests.post") as post, \
         patch("img2vid.utils.veo_client.requests.get") as get, \
         patch("img2vid.utils.veo_client.time.sleep") as sleep:
        post.return_value = _mock_resp({"name": OP_NAME})
        get.side_effect = [
            _mock_resp({"name": OP_NAME, "done": False}),
            _mock_resp(_done()),
            _mock_resp(content=b"video-bytes", headers={"Content-Type": "video/mp4"}),
        ]
        video = generate_video_from_image("aGk=", "image/png", "a cat walking", progress.append)

    assert video.data == b"video-bytes"
    assert progress == list(PROGRESS_MESSAGES[:2])
    assert sleep.call_count == 2
    sleep.assert_called_with(10.0)
    download_args, download_kwargs = get.call_args
    assert download_args[0] == VIDEO_URI
    assert download_kwargs["params"] == {"key": "key"}


def test_missing_video_reference_skips_download(monkeypatch):
    monkeypatch.setenv("API_KEY", "key")
    with patch("img2vid.utils.veo_client.requests.post") as post, \
         patch("img2vid.utils.veo_client.requests.get") as get, \
         patch("img2vid.utils.veo_client.time.sleep"):
        post.return_value = _mock_resp({"name": OP_NAME})
        get.return_value = _mock_resp(_done(uri=None))
        with pytest.raises(MissingResultError):
            generate_video_from_image("aGk=", "image/png", "a cat walking", lambda m: None)

    # one status poll, no download
    assert get.call_count == 1


def test_missing_result_includes_service_error(monkeypatch):
    monkeypatch.setenv("API_KEY", "key")
    with patch("img2vid.utils.veo_client.requests.post") as post:
        post.return_value = _mock_resp({"name": OP_NAME, "done": True, "error": {"message": "safety filter"}})
        with pytest.raises(MissingResultError) as excinfo:
            generate_video_from_image("aGk=", "image/png", "a cat walking", lambda m: None)
    assert "safety filter" in str(excinfo.value)


def test_download_error_has_status_text(monkeypatch):
    monkeypatch.setenv("API_KEY", "key")
    with patch("img2vid.utils.veo_client.requests.post") as post, \
         patch("img2vid.utils.veo_client.requests.get") as get:
        post.return_value = _mock_resp(_done())
        get.return_value = _mock_resp(status=404, reason="Not Found")
        with pytest.raises(DownloadError) as excinfo:
            generate_video_from_image("aGk=", "image/png", "a cat walking", lambda m: None)
    assert "Not Found" in str(excinfo.value)


def test_transient_poll_failure_keeps_polling(monkeypatch):
    import requests

    monkeypatch.setenv("API_KEY", "key")
    progress = []
    with patch("img2vid.utils.veo_client.requests.post") as post, \
         patch("img2vid.utils.veo_client.requests.get") as get, \
         patch("img2vid.utils.veo_client.time.sleep"):
        post.return_value = _mock_resp({"name": OP_NAME})
        get.side_effect = [
            requests.ConnectionError("network down"),
            _mock_resp(status=500, reason="Internal Server Error"),
            _mock_resp(_done()),
            _mock_resp(content=b"ok", headers={"Content-Type": "video/mp4"}),
        ]
        video = generate_video_from_image("aGk=", "image/png", "a cat walking", progress.append)

    assert video.data == b"ok"
    assert progress == list(PROGRESS_MESSAGES[:3])
