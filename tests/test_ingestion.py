from __future__ import annotations

import base64
from unittest.mock import MagicMock

import pytest

from utils.batch import RelayClient, RelayError, label_batch
from utils.ingestion import ImageFile, harvest_images, to_data_uri


@pytest.fixture
def image_tree(tmp_path):
    (tmp_path / "b.png").write_bytes(b"png-bytes")
    (tmp_path / "a.jpg").write_bytes(b"jpg-bytes")
    (tmp_path / "notes.txt").write_text("not an image")
    nested = tmp_path / "sub" / "deeper"
    nested.mkdir(parents=True)
    (nested / "c.gif").write_bytes(b"gif-bytes")
    return tmp_path


def test_to_data_uri(image_tree):
    uri = to_data_uri(image_tree / "b.png")
    assert uri == "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()


def test_harvest_walks_folders_recursively(image_tree):
    images = harvest_images([image_tree])
    assert [i.name for i in images] == ["a.jpg", "b.png", "c.gif"]
    assert images[0].data.startswith("data:image/jpeg;base64,")


def test_harvest_keeps_submission_order(image_tree):
    images = harvest_images([image_tree / "b.png", image_tree / "notes.txt", image_tree / "a.jpg"])
    assert [i.name for i in images] == ["b.png", "a.jpg"]


def test_label_batch_continues_after_failure():
    images = [ImageFile("one.png", "data:1"), ImageFile("two.png", "data:2"), ImageFile("three.png", "data:3")]
    calls = []

    def labeler(image, prompt):
        calls.append((image, prompt))
        if image == "data:2":
            raise RelayError("Request failed: 500")
        return {"objects": [], "originalImage": image}

    results = label_batch(images, "cars", labeler)

    assert calls == [("data:1", "cars"), ("data:2", "cars"), ("data:3", "cars")]
    assert results[0] == {"name": "one.png", "success": True, "data": {"objects": [], "originalImage": "data:1"}}
    assert results[1] == {"name": "two.png", "success": False, "error": "Request failed: 500"}
    assert results[2]["success"] is True


def test_relay_client():
    session = MagicMock()
    session.post.return_value = MagicMock(ok=True, json=MagicMock(return_value={"objects": []}))
    client = RelayClient("http://localhost:3002/", session=session)

    assert client.label("data:1", "dogs") == {"objects": []}
    session.post.assert_called_once_with(
        "http://localhost:3002/auto-label",
        json={"image": "data:1", "prompt": "dogs"},
    )


def test_relay_client_error():
    session = MagicMock()
    session.post.return_value = MagicMock(ok=False, status_code=400)
    with pytest.raises(RelayError, match="Request failed: 400"):
        RelayClient("http://relay", session=session).label("", "")
