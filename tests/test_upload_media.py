from types import SimpleNamespace

import pytest

import upload_media
from conftest import FakeTransport
from s3chunkupload.config import ENV_VARS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_name in list(ENV_VARS.values()) + ["S3_BUCKET", "S3_ACL", "CHUNK_UPLOAD_LOG_FILE"]:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.setattr(upload_media, "load_dotenv", lambda: None)


@pytest.fixture
def fake(monkeypatch):
    transport = FakeTransport()
    monkeypatch.setattr(
        upload_media, "S3Transport", SimpleNamespace(from_credentials=lambda **kwargs: transport)
    )
    monkeypatch.setenv("S3_BUCKET", "media")
    monkeypatch.setenv("CHUNK_UPLOAD_CHUNK_SIZE", "4")
    monkeypatch.setenv("CHUNK_UPLOAD_RETRY_DELAY", "0")
    return transport


@pytest.fixture
def media_file(tmp_path):
    path = tmp_path / "clip.bin"
    path.write_bytes(b"0123456789")
    return path


def test_missing_arguments(capsys):
    assert upload_media.main([]) == 1
    assert "usage" in capsys.readouterr().err


def test_missing_bucket(media_file, capsys):
    assert upload_media.main([str(media_file), "uploads/clip.bin"]) == 1
    assert "S3_BUCKET" in capsys.readouterr().err


@pytest.mark.parametrize("strategy", ["serial", "parallel"])
def test_uploads_file(fake, media_file, capsys, strategy):
    assert upload_media.main([str(media_file), "uploads/clip.bin", strategy]) == 0

    assert fake.calls[0] == ("begin", "media", "uploads/clip.bin", None)
    assert fake.payloads == {1: b"0123", 2: b"4567", 3: b"89"}
    assert [n for n, _ in fake.completed_parts] == [1, 2, 3]
    assert "Upload complete: https://bucket.example.com/key" in capsys.readouterr().out


def test_acl_from_environment(fake, media_file, monkeypatch):
    monkeypatch.setenv("S3_ACL", "public-read")

    assert upload_media.main([str(media_file), "clip.bin"]) == 0
    assert fake.calls[0] == ("begin", "media", "clip.bin", "public-read")


def test_failed_part_exits_with_error(fake, media_file, monkeypatch, capsys):
    fake.failures = {2: 100}
    monkeypatch.setenv("CHUNK_UPLOAD_MAX_RETRIES", "2")

    assert upload_media.main([str(media_file), "clip.bin"]) == 1
    assert fake.attempts[2] == 2
    assert fake.completed_parts is None
    assert "upload failed" in capsys.readouterr().err


def test_missing_file_exits_with_error(fake, tmp_path, capsys):
    assert upload_media.main([str(tmp_path / "nope.bin"), "clip.bin"]) == 1
    assert "upload failed" in capsys.readouterr().err


def test_unknown_strategy_exits_with_error(fake, media_file):
    assert upload_media.main([str(media_file), "clip.bin", "sideways"]) == 1
    assert fake.calls == []


def test_invalid_environment_value(fake, media_file, monkeypatch, capsys):
    monkeypatch.setenv("CHUNK_UPLOAD_MAX_RETRIES", "many")

    assert upload_media.main([str(media_file), "clip.bin"]) == 1
    assert "CHUNK_UPLOAD_MAX_RETRIES" in capsys.readouterr().err
