import os
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from main import create_app

T = 1700000000000
CHUNK = 1_000_000


@pytest.fixture
def base_dir(tmp_path):
    return tmp_path / "files"


@pytest.fixture
def client(base_dir):
    """Client for an app storing into an isolated temporary directory."""
    with TestClient(create_app(base_dir)) as test_client:
        yield test_client


def generate_random_content(size_bytes):
    """Generate random binary content of specified size."""
    return os.urandom(size_bytes)


def upload(client, filename, content):
    response = client.post("/upload", files={"file": (filename, content)})
    assert response.status_code == 200
    return response.json()["filename"]


def test_startup_creates_base_dir(client, base_dir):
    assert base_dir.is_dir()


def test_upload_list_get_delete_scenario(client):
    """Upload "hello world.txt", list it, read it back, delete it."""
    with patch("app.services.naming.current_millis", return_value=T):
        response = client.post("/upload", files={"file": ("hello world.txt", b"hi")})

    assert response.status_code == 200
    assert response.json() == {
        "message": "File uploaded",
        "filename": f"{T}-hello_world.txt",
        "original": "hello world.txt",
    }

    response = client.get("/files")
    assert response.status_code == 200
    assert response.json() == [f"{T}-hello_world.txt"]

    response = client.get(f"/files/{T}-hello_world.txt")
    assert response.status_code == 200
    assert response.content == b"hi"

    response = client.delete(f"/files/{T}-hello_world.txt")
    assert response.status_code == 200
    assert response.json() == {"message": "File deleted"}

    response = client.get("/files")
    assert response.json() == []


def test_upload_round_trip_binary(client):
    content = generate_random_content(100_000)
    stored_name = upload(client, "blob.bin", content)

    assert stored_name in client.get("/files").json()
    response = client.get(f"/files/{stored_name}")
    assert response.content == content
    assert response.headers["content-length"] == str(len(content))


def test_upload_without_file(client):
    response = client.post("/upload")
    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}

    response = client.post("/upload", data={"note": "no file here"})
    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}

    # Browser form submitted with no file chosen
    response = client.post("/upload", files={"file": ("", b"abc")})
    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}

    # Plain text field named "file"
    response = client.post("/upload", data={"file": "not a file"})
    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}

    assert client.get("/files").json() == []


def test_get_file_content_type_inferred_from_name(client):
    stored_name = upload(client, "notes.txt", b"some text")
    response = client.get(f"/files/{stored_name}")
    assert response.headers["content-type"].startswith("text/plain")

    stored_name = upload(client, "data.json", b'{"key": "value"}')
    response = client.get(f"/files/{stored_name}")
    assert response.headers["content-type"] == "application/json"


def test_get_file_invalid_name(client):
    response = client.get("/files/a..b")
    assert response.status_code == 400
    assert response.text == "Invalid filename"


def test_get_file_not_found(client):
    response = client.get("/files/missing.txt")
    assert response.status_code == 404
    assert response.text == "Not found"


def test_list_files_storage_unavailable(client, base_dir):
    os.rmdir(base_dir)
    response = client.get("/files")
    assert response.status_code == 500
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text


def test_stream_whole_file_without_range(client):
    content = generate_random_content(4096)
    stored_name = upload(client, "video.mp4", content)

    response = client.get(f"/stream/{stored_name}")
    assert response.status_code == 200
    assert response.content == content
    assert response.headers["content-length"] == "4096"
    assert response.headers["content-type"] == "application/octet-stream"


def test_stream_range_from_start_small_file(client):
    content = generate_random_content(5000)
    stored_name = upload(client, "clip.mp4", content)

    response = client.get(f"/stream/{stored_name}", headers={"Range": "bytes=0-"})
    assert response.status_code == 206
    assert response.headers["content-range"] == "bytes 0-4999/5000"
    assert response.headers["accept-ranges"] == "bytes"
    assert response.headers["content-length"] == "5000"
    assert response.content == content


def test_stream_range_is_capped_at_one_chunk(client):
    size = CHUNK * 2 + 500_000
    content = generate_random_content(size)
    stored_name = upload(client, "movie.mp4", content)

    response = client.get(f"/stream/{stored_name}", headers={"Range": "bytes=0-"})
    assert response.status_code == 206
    assert response.headers["content-range"] == f"bytes 0-{CHUNK - 1}/{size}"
    assert len(response.content) == CHUNK
    assert response.content == content[:CHUNK]


def test_stream_successive_ranges_reassemble_file(client):
    size = CHUNK * 2 + 123
    content = generate_random_content(size)
    stored_name = upload(client, "movie.mp4", content)

    received = b""
    while len(received) < size:
        response = client.get(f"/stream/{stored_name}", headers={"Range": f"bytes={len(received)}-"})
        assert response.status_code == 206
        assert int(response.headers["content-length"]) == len(response.content)
        received += response.content

    assert received == content


def test_stream_suffix_range(client):
    content = generate_random_content(2000)
    stored_name = upload(client, "track.mp3", content)

    response = client.get(f"/stream/{stored_name}", headers={"Range": "bytes=-500"})
    assert response.status_code == 206
    assert response.headers["content-range"] == "bytes 1500-1999/2000"
    assert response.content == content[-500:]


def test_stream_range_not_satisfiable(client):
    stored_name = upload(client, "small.bin", b"0123456789")

    response = client.get(f"/stream/{stored_name}", headers={"Range": "bytes=10-"})
    assert response.status_code == 416
    assert response.headers["content-range"] == "bytes */10"
    assert response.content == b""


def test_stream_not_found_has_no_body(client):
    response = client.get("/stream/missing.mp4")
    assert response.status_code == 404
    assert response.content == b""


def test_stream_invalid_name(client):
    response = client.get("/stream/a..b", headers={"Range": "bytes=0-"})
    assert response.status_code == 400
    assert response.text == "Invalid filename"


def test_delete_nonexistent_file(client):
    response = client.delete("/files/missing.txt")
    assert response.status_code == 404
    assert response.text == "Not found"


def test_delete_invalid_name(client):
    response = client.delete("/files/a..b")
    assert response.status_code == 400
    assert response.text == "Invalid filename"


def test_cors_headers(client):
    response = client.get("/files", headers={"Origin": "http://example.com"})
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


if __name__ == "__main__":
    pytest.main(["-xvs", __file__])
