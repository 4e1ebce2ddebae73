import os
from pathlib import Path

import pytest

from imageshare import __main__ as cli
from imageshare.core import config, utils
from imageshare.core.config import Settings
from imageshare.core.utils import generate_upload_name, is_upload_name


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("DELETE_DELAY", "5")
    monkeypatch.setenv("UPLOAD_LIMIT", "3")
    monkeypatch.setenv("IMGUR_CLIENT_ID", "client")

    settings = Settings(_env_file=None)

    assert settings.delete_delay == 5
    assert settings.upload_limit_bytes == 3 * 1024 * 1024
    assert settings.imgur_enabled


def test_domain_falls_back_to_local_ip(monkeypatch):
    monkeypatch.setattr(config, "get_local_ip", lambda: "192.168.1.20")

    settings = Settings(_env_file=None, domain=None)

    assert settings.web_domain == "192.168.1.20"
    assert settings.public_base_url == "http://192.168.1.20"


def test_storage_dir_prefers_external_dir(tmp_path):
    settings = Settings(_env_file=None, upload_dir=tmp_path / "uploads")
    assert settings.storage_dir == tmp_path / "uploads"

    settings = Settings(_env_file=None, external_dir=tmp_path / "keep")
    assert settings.storage_dir == tmp_path / "keep"


def test_cli_sets_environment(monkeypatch):
    calls = []
    monkeypatch.setenv("DELETE_DELAY", "2")
    monkeypatch.setenv("EXTERNAL_DIR", "unset")
    monkeypatch.setattr(cli.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    cli.main(["--delay", "10", "--dir", "/srv/screenshots", "--port", "9000"])

    assert os.environ["DELETE_DELAY"] == "10"
    assert Path(os.environ["EXTERNAL_DIR"]) == Path("/srv/screenshots")
    assert calls == [(("imageshare.main:app",), {"host": "0.0.0.0", "port": 9000})]


def test_upload_names():
    name = generate_upload_name("image/jpeg")

    assert name.endswith(".jpg")
    assert is_upload_name(name)
    assert is_upload_name(generate_upload_name("image/apng"))
    assert not is_upload_name("../../etc/passwd")
    assert not is_upload_name("notes.txt")


class FakeSocket:
    created = 0

    def __init__(self, *args):
        FakeSocket.created += 1

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def connect(self, address):
        pass

    def getsockname(self):
        return ("192.168.1.20", 50000)


class UnroutableSocket(FakeSocket):
    def connect(self, address):
        raise OSError(101, "Network is unreachable")


@pytest.fixture
def fresh_local_ip():
    utils.get_local_ip.cache_clear()
    yield
    utils.get_local_ip.cache_clear()


def test_local_ip_is_detected_once(monkeypatch, fresh_local_ip):
    FakeSocket.created = 0
    monkeypatch.setattr(utils.socket, "socket", FakeSocket)

    assert utils.get_local_ip() == "192.168.1.20"
    assert utils.get_local_ip() == "192.168.1.20"
    assert FakeSocket.created == 1


def test_local_ip_falls_back_to_hostname(monkeypatch, fresh_local_ip):
    monkeypatch.setattr(utils.socket, "socket", UnroutableSocket)
    monkeypatch.setattr(utils.socket, "gethostname", lambda: "imageshare-box")

    assert utils.get_local_ip() == "imageshare-box"
