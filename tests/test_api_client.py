from unittest.mock import Mock

import pytest
from requests.exceptions import RequestException

from scenario_transcriber.client import APIClient
from scenario_transcriber.client import api_client as api_client_module


def make_response(status_code=200, payload=None, content=b""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.content = content
    if status_code >= 400:
        response.raise_for_status.side_effect = RequestException(f"HTTP {status_code}")
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def client():
    api = APIClient("http://api.local:3000/")
    api.session = Mock()
    return api


def test_unknown_job_returns_none(client):
    client.session.get.return_value = make_response(404, {"error": "Job not found"})

    assert client.get_job_status("abc") is None
    client.session.get.assert_called_once_with("http://api.local:3000/scenario/status/abc", timeout=30)


def test_upload_uses_sync_endpoint_when_waiting(client, tmp_path):
    archive = tmp_path / "export.zip"
    archive.write_bytes(b"PK")
    client.session.post.return_value = make_response(200, {"job_id": "j1", "file_path": "/uploads/jobs/x/x.docx"})

    result = client.upload_archive(str(archive), wait=True)

    assert result["file_path"] == "/uploads/jobs/x/x.docx"
    assert client.session.post.call_args[0][0] == "http://api.local:3000/scenario/upload/sync"


def test_upload_missing_file(client, tmp_path):
    with pytest.raises(FileNotFoundError):
        client.upload_archive(str(tmp_path / "missing.zip"))


def test_wait_for_completion_returns_finished_status(client, monkeypatch):
    monkeypatch.setattr(api_client_module.time, "sleep", lambda _: None)
    client.session.get.side_effect = [
        make_response(200, {"state": "queued", "progress": 0}),
        make_response(200, {"state": "processing", "progress": 40}),
        make_response(200, {"state": "finished", "progress": 100, "file_path": "/uploads/jobs/a/a.docx"}),
    ]

    status = client.wait_for_completion("job-1", poll_interval=0)

    assert status["file_path"] == "/uploads/jobs/a/a.docx"
    assert client.session.get.call_count == 3


def test_wait_for_completion_raises_on_failure(client):
    client.session.get.return_value = make_response(200, {"state": "failed", "error": "No items found"})

    with pytest.raises(RequestException, match="No items found"):
        client.wait_for_completion("job-1", poll_interval=0)


def test_download_artifact(client, tmp_path):
    client.session.get.return_value = make_response(200, content=b"PK\x03\x04")

    target = client.download_artifact("/uploads/jobs/a/a.docx", str(tmp_path / "a.docx"))

    assert target.read_bytes() == b"PK\x03\x04"
    client.session.get.assert_called_once_with("http://api.local:3000/uploads/jobs/a/a.docx", timeout=30)
