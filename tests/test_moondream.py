from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import pytest

import models.moondream as moondream
from models.moondream import ConfigurationError, MoondreamClient, UpstreamError
from pipeline.tools import run_detect, run_query
from utils.config import Settings

IMAGE = "data:image/png;base64,iVBORw0KGgo="


def make_client(ok=True, status_code=200, payload=None):
    session = MagicMock()
    session.headers = {}
    session.post.return_value = MagicMock(
        ok=ok,
        status_code=status_code,
        json=MagicMock(return_value={} if payload is None else payload),
    )
    return MoondreamClient(api_key="secret", session=session), session


def test_query_request():
    client, session = make_client(payload={"answer": "car, dog"})

    assert client.query(IMAGE, "What is here?") == "car, dog"

    assert session.headers["X-Moondream-Auth"] == "secret"
    args, kwargs = session.post.call_args
    assert args[0] == "https://api.moondream.ai/v1/query"
    assert kwargs["json"] == {"image_url": IMAGE, "question": "What is here?", "reasoning": True}
    assert kwargs["timeout"] is None


def test_detect_request():
    boxes = [{"x_min": 0.1, "y_min": 0.2, "x_max": 0.3, "y_max": 0.4}]
    client, session = make_client(payload={"objects": boxes})

    assert client.detect(IMAGE, "red car") == boxes

    args, kwargs = session.post.call_args
    assert args[0] == "https://api.moondream.ai/v1/detect"
    assert kwargs["json"] == {"image_url": IMAGE, "object": "red car", "reasoning": True}


def test_missing_fields_default_empty():
    client, _ = make_client(payload={})
    assert client.query(IMAGE, "q") == ""
    assert client.detect(IMAGE, "car") == []


def test_non_ok_status_raises():
    client, _ = make_client(ok=False, status_code=429)
    with pytest.raises(UpstreamError) as exc:
        client.query(IMAGE, "q")
    assert str(exc.value) == "Moondream query failed: 429"
    assert exc.value.status_code == 429


def test_non_object_body_raises():
    client, _ = make_client(payload=[])
    with pytest.raises(UpstreamError, match="returned list, expected an object"):
        client.detect(IMAGE, "car")


@pytest.mark.parametrize(
    "objects",
    [
        [{"x_min": 0.1, "y_min": 0.2}],
        [{"x_min": 0.1, "y_min": 0.2, "x_max": "0.5", "y_max": 0.6}],
        ["not a box"],
        {"x_min": 0.1},
    ],
)
def test_malformed_boxes_raise(objects):
    client, _ = make_client(payload={"objects": objects})
    with pytest.raises(UpstreamError, match="malformed boxes for 'car'"):
        client.detect(IMAGE, "car")


def test_get_moondream_requires_key(monkeypatch):
    monkeypatch.setattr(moondream, "_local", threading.local())
    settings = Settings(_env_file=None, MOONDREAM_API_KEY=None)
    with patch("models.moondream.get_settings", return_value=settings):
        with pytest.raises(ConfigurationError, match="MOONDREAM_API_KEY not configured"):
            moondream.get_moondream()


def test_get_moondream_reuses_client(monkeypatch):
    monkeypatch.setattr(moondream, "_local", threading.local())
    settings = Settings(_env_file=None, MOONDREAM_API_KEY="k", MOONDREAM_API_URL="http://md.local/v1/")
    with patch("models.moondream.get_settings", return_value=settings):
        first = moondream.get_moondream()
        assert moondream.get_moondream() is first
    assert first.base_url == "http://md.local/v1"


def test_get_moondream_picks_up_rotated_key(monkeypatch):
    monkeypatch.setattr(moondream, "_local", threading.local())
    old = Settings(_env_file=None, MOONDREAM_API_KEY="old")
    new = Settings(_env_file=None, MOONDREAM_API_KEY="new")
    with patch("models.moondream.get_settings", side_effect=[old, new]):
        first = moondream.get_moondream()
        second = moondream.get_moondream()
    assert second is not first
    assert second.session.headers["X-Moondream-Auth"] == "new"


def test_get_moondream_is_per_thread(monkeypatch):
    monkeypatch.setattr(moondream, "_local", threading.local())
    settings = Settings(_env_file=None, MOONDREAM_API_KEY="k")
    clients = []
    with patch("models.moondream.get_settings", return_value=settings):
        clients.append(moondream.get_moondream())
        worker = threading.Thread(target=lambda: clients.append(moondream.get_moondream()))
        worker.start()
        worker.join()
    assert clients[0] is not clients[1]


@patch("pipeline.tools.get_moondream")
def test_tools_wrap_client(mock_get):
    mock_get.return_value.query.return_value = "cat"
    mock_get.return_value.detect.return_value = []

    assert run_query.invoke({"image": IMAGE, "question": "q"}) == {"answer": "cat"}
    assert run_detect.invoke({"image": IMAGE, "object_name": "cat"}) == {"objects": []}
    mock_get.return_value.detect.assert_called_once_with(IMAGE, "cat")
