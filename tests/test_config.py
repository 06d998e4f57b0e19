import json

from unipager_client.config import ClientConfig, get_default_config, load_config


def test_missing_config_file_is_created(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setenv("UNIPAGER_CLIENT_CONFIG", str(path))

    config = load_config()

    assert config == get_default_config()
    assert json.loads(path.read_text(encoding="utf-8"))["server_port"] == 8055


def test_partial_config_is_filled_with_defaults(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"server_host": "pager.local"}), encoding="utf-8")
    monkeypatch.setenv("UNIPAGER_CLIENT_CONFIG", str(path))

    config = load_config()

    assert config["server_host"] == "pager.local"
    assert config["reconnect_delay_s"] == 1.0
    assert config["panel_port"] == 8056


def test_invalid_config_falls_back_to_defaults(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    monkeypatch.setenv("UNIPAGER_CLIENT_CONFIG", str(path))

    assert load_config() == get_default_config()


def test_client_config_from_dict():
    cfg = ClientConfig.from_dict({"server_host": "10.0.0.2", "server_port": "9000", "theme": "x"})
    assert cfg.url == "ws://10.0.0.2:9000"
    assert cfg.reconnect_delay_s == 1.0


def test_default_client_config_url():
    assert ClientConfig().url == "ws://localhost:8055"


def test_corrupt_config_falls_back_to_defaults(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")
    monkeypatch.setenv("UNIPAGER_CLIENT_CONFIG", str(path))

    assert load_config() == get_default_config()
    assert path.read_text(encoding="utf-8") == "{broken"
