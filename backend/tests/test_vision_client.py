from unittest.mock import MagicMock

import pytest
import requests

from domain.errors import MissingCredentialsError, VisionServiceError
from services.vision_client import GeminiVisionClient


def _response(status=200, payload=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status
    resp.text = "body"
    if json_error:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = payload
    return resp


def _client(session, api_key="test-key"):
    return GeminiVisionClient(api_key=api_key, model="gemini-2.0-flash", session=session)


def test_returns_text_and_posts_inline_image():
    session = MagicMock()
    session.post.return_value = _response(
        payload={"candidates": [{"content": {"parts": [{"text": '{"name": "Coit Tower"}'}]}}]}
    )
    text = _client(session).identify(b"\xff\xd8jpeg")
    assert text == '{"name": "Coit Tower"}'

    args, kwargs = session.post.call_args
    assert args[0].endswith("/gemini-2.0-flash:generateContent")
    assert kwargs["params"] == {"key": "test-key"}
    parts = kwargs["json"]["contents"][0]["parts"]
    assert parts[1]["inline_data"]["mime_type"] == "image/jpeg"
    assert parts[1]["inline_data"]["data"] == "/9hqcGVn"


def test_missing_key():
    session = MagicMock()
    with pytest.raises(MissingCredentialsError) as err:
        _client(session, api_key=None).identify(b"img")
    assert err.value.setting_name == "GEMINI_API_KEY"
    session.post.assert_not_called()


def test_empty_image():
    with pytest.raises(VisionServiceError):
        _client(MagicMock()).identify(b"")


@pytest.mark.parametrize(
    "resp",
    [
        _response(status=403),
        _response(json_error=True),
        _response(payload={"candidates": []}),
        _response(payload={"candidates": [{"content": {"parts": [{"text": ""}]}}]}),
    ],
)
def test_bad_responses_raise_service_error(resp):
    session = MagicMock()
    session.post.return_value = resp
    with pytest.raises(VisionServiceError):
        _client(session).identify(b"img")


def test_network_error():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("boom")
    with pytest.raises(VisionServiceError):
        _client(session).identify(b"img")
