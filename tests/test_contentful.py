import json

import pytest
import requests

from contentful_sync import config
from contentful_sync.exceptions import RemoteOperationError
from contentful_sync.remote.contentful import ContentfulClient

BASE = f"{config.CONTENTFUL_API_URL}/spaces/space1/environments/master"


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = json.dumps(payload).encode() if payload is not None else b""

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Replays queued responses and records each request."""

    def __init__(self, *responses):
        self.headers = {}
        self.requests = []
        self.responses = list(responses)

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        reply = self.responses.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def asset(asset_id, title, version=1, published=None, url=None):
    file_info = {"fileName": f"{title}.jpg"}
    if url:
        file_info["url"] = url
    meta = {"id": asset_id, "version": version}
    if published:
        meta["publishedVersion"] = published
    return {"sys": meta, "fields": {"title": {"en-US": title}, "file": {"en-US": file_info}}}


def client_with(*responses):
    session = FakeSession(*responses)
    client = ContentfulClient("space1", "secret", session=session, sleep=lambda _: None)
    return client, session


def test_token_sent_as_bearer():
    _, session = client_with()
    assert session.headers["Authorization"] == "Bearer secret"


def test_list_records_follows_pages():
    client, session = client_with(
        FakeResponse(payload={"items": [asset("a1", "Fern"), asset("a2", "Oak")], "total": 3}),
        FakeResponse(payload={"items": [asset("a3", "Rose")], "total": 3}),
    )

    refs = client.list_records()

    assert [(r.identifier, r.display_name) for r in refs] == [("a1", "Fern"), ("a2", "Oak"), ("a3", "Rose")]
    assert [r[2]["params"]["skip"] for r in session.requests] == [0, 2]
    assert session.requests[0][1] == f"{BASE}/assets"


def test_create_record_posts_fields():
    client, session = client_with(FakeResponse(201, asset("new1", "Fern")))

    ref = client.create_record("Fern", "Green leaves", "$Fern-watermarked.jpg")

    assert ref.identifier == "new1"
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", f"{BASE}/assets")
    fields = kwargs["json"]["fields"]
    assert fields["title"] == {"en-US": "Fern"}
    assert fields["description"] == {"en-US": "Green leaves"}
    assert fields["file"]["en-US"]["fileName"] == "$Fern-watermarked.jpg"
    assert fields["file"]["en-US"]["contentType"] == "image/jpeg"


def test_update_name_puts_with_version():
    client, session = client_with(
        FakeResponse(payload=asset("a1", "Fern", version=7)),
        FakeResponse(payload=asset("a1", "Fernando", version=8)),
    )

    client.update_name("a1", "Fernando", "")

    method, url, kwargs = session.requests[1]
    assert (method, url) == ("PUT", f"{BASE}/assets/a1")
    assert kwargs["headers"]["X-Contentful-Version"] == "7"
    assert kwargs["json"]["fields"]["title"] == {"en-US": "Fernando"}
    # Untouched fields go back as they were
    assert kwargs["json"]["fields"]["file"]["en-US"]["fileName"] == "Fern.jpg"


def test_delete_unpublishes_first():
    client, session = client_with(
        FakeResponse(payload=asset("a1", "Fern", version=4, published=3)),
        FakeResponse(payload=asset("a1", "Fern", version=5)),
        FakeResponse(204),
    )

    client.delete_record("a1")

    calls = [(m, u) for m, u, _ in session.requests]
    assert calls == [
        ("GET", f"{BASE}/assets/a1"),
        ("DELETE", f"{BASE}/assets/a1/published"),
        ("DELETE", f"{BASE}/assets/a1"),
    ]
    assert session.requests[2][2]["headers"]["X-Contentful-Version"] == "5"


def test_delete_draft_skips_unpublish():
    client, session = client_with(
        FakeResponse(payload=asset("a1", "Fern", version=2)),
        FakeResponse(204),
    )

    client.delete_record("a1")

    assert [m for m, _, _ in session.requests] == ["GET", "DELETE"]


def test_upload_links_and_processes():
    client, session = client_with(
        FakeResponse(201, {"sys": {"id": "up1"}}),
        FakeResponse(payload=asset("a1", "Fern", version=2)),
        FakeResponse(payload=asset("a1", "Fern", version=3)),
        FakeResponse(204),
        FakeResponse(payload=asset("a1", "Fern", version=4)),
        FakeResponse(payload=asset("a1", "Fern", version=4, url="//images/fern.jpg")),
    )

    client.upload_asset("a1", "$Fern-watermarked.jpg", b"jpeg-bytes")

    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", f"{config.CONTENTFUL_UPLOAD_URL}/spaces/space1/uploads")
    assert kwargs["data"] == b"jpeg-bytes"

    linked = session.requests[2][2]["json"]["fields"]["file"]["en-US"]
    assert linked["uploadFrom"]["sys"]["id"] == "up1"
    assert linked["fileName"] == "$Fern-watermarked.jpg"

    method, url, kwargs = session.requests[3]
    assert (method, url) == ("PUT", f"{BASE}/assets/a1/files/en-US/process")
    assert kwargs["headers"]["X-Contentful-Version"] == "3"
    assert len(session.requests) == 6


def test_http_error_wrapped():
    client, _ = client_with(FakeResponse(404, {"message": "not found"}))

    with pytest.raises(RemoteOperationError) as exc:
        client.update_name("gone", "Fern", "")

    assert exc.value.status == 404
    assert exc.value.token == "gone"
    assert exc.value.action == "update"


def test_connection_error_wrapped():
    client, _ = client_with(requests.ConnectionError("connection refused"))

    with pytest.raises(RemoteOperationError) as exc:
        client.list_records()

    assert exc.value.status is None
    assert "connection refused" in str(exc.value)
