import json

import pytest
import requests

from transcoder import publisher
from transcoder.models import PublishFailed
from conftest import FakeStore


def _files(tmp_path, n=3):
    out = []
    for i in range(n):
        p = tmp_path / f"video_{i}.mp4"
        p.write_bytes(b"v" * (i + 1))
        out.append((p.name, p))
    return out


@pytest.mark.asyncio
async def test_publish_all_in_order(tmp_path):
    store = FakeStore()
    files = _files(tmp_path)

    published = await publisher.publish_all(files, store)

    assert store.calls == [name for name, _ in files]
    assert list(published) == [name for name, _ in files]
    assert all(r.content_id.startswith("Qm") for r in published.values())
    assert published["video_0.mp4"].rendition_name == "video_0.mp4"


@pytest.mark.asyncio
async def test_publish_failure_returns_nothing(tmp_path):
    store = FakeStore(fail_on=2)
    files = _files(tmp_path)

    with pytest.raises(PublishFailed) as exc:
        await publisher.publish_all(files, store)

    assert exc.value.rendition == "video_1.mp4"
    assert "Unauthorized" in exc.value.message
    # stops at the failing file
    assert store.calls == ["video_0.mp4", "video_1.mp4"]


@pytest.mark.asyncio
async def test_publish_nothing(tmp_path):
    assert await publisher.publish_all([], FakeStore()) == {}


class _Resp:
    def __init__(self, status=200, payload=None, text=""):
        self.status_code = status
        self._payload = payload
        self.text = text or json.dumps(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def test_pin_file_request_shape(monkeypatch, tmp_path):
    recorded = {}

    def fake_post(url, files=None, data=None, headers=None, timeout=None):
        recorded.update(url=url, name=files["file"][0], body=files["file"][1].read(),
                        data=data, headers=headers, timeout=timeout)
        return _Resp(payload={"IpfsHash": "QmHash", "PinSize": 7})

    monkeypatch.setattr(publisher.requests, "post", fake_post)
    path = tmp_path / "video_720p_t.mp4"
    path.write_bytes(b"encoded")

    store = publisher.PinataStore("key", "secret", timeout=42)
    assert store.pin_file(path) == "QmHash"

    assert recorded["url"] == "https://api.pinata.cloud/pinning/pinFileToIPFS"
    assert recorded["name"] == "video_720p_t.mp4"
    assert recorded["body"] == b"encoded"
    assert recorded["headers"] == {"pinata_api_key": "key", "pinata_secret_api_key": "secret"}
    assert json.loads(recorded["data"]["pinataMetadata"]) == {"name": "video_720p_t.mp4"}
    assert recorded["timeout"] == 42


def test_pin_file_requires_credentials(monkeypatch, tmp_path):
    def fail_post(*a, **kw):
        raise AssertionError("must not call Pinata without credentials")

    monkeypatch.setattr(publisher.requests, "post", fail_post)
    path = tmp_path / "v.mp4"
    path.write_bytes(b"x")
    with pytest.raises(RuntimeError, match="credentials"):
        publisher.PinataStore("", "").pin_file(path)


def test_pin_file_http_error(monkeypatch, tmp_path):
    monkeypatch.setattr(publisher.requests, "post", lambda *a, **kw: _Resp(status=401, payload={"error": "bad"}))
    path = tmp_path / "v.mp4"
    path.write_bytes(b"x")
    with pytest.raises(requests.HTTPError):
        publisher.PinataStore("k", "s").pin_file(path)


def test_pin_file_missing_hash(monkeypatch, tmp_path):
    monkeypatch.setattr(publisher.requests, "post", lambda *a, **kw: _Resp(payload={"PinSize": 1}))
    path = tmp_path / "v.mp4"
    path.write_bytes(b"x")
    with pytest.raises(RuntimeError, match="IpfsHash"):
        publisher.PinataStore("k", "s").pin_file(path)


def test_store_from_settings(settings):
    from dataclasses import replace

    s = replace(settings, pinata_api_key="a", pinata_secret_api_key="b", pinata_timeout_sec=7)
    store = publisher.PinataStore.from_settings(s)
    assert (store.api_key, store.secret_api_key, store.timeout) == ("a", "b", 7)
