import json

from print_server.config_manager import ConfigManager


def test_defaults_are_created_on_first_run(tmp_path):
    config_path = tmp_path / "config.json"

    manager = ConfigManager(str(config_path))

    assert config_path.exists()
    server = manager.get_server_config()
    assert server["ip"] == "localhost"
    assert server["port"] == 3179
    assert server["autostart"] is True
    assert server["https"]["use_https"] is False
    assert (tmp_path / "temp").is_dir()


def test_existing_values_are_kept_and_missing_keys_filled(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "server": {"ip": "0.0.0.0", "port": 9100},
        "render": {"timeout_seconds": None},
    }), encoding="utf-8")

    manager = ConfigManager(str(config_path))

    server = manager.get_server_config()
    assert (server["ip"], server["port"]) == ("0.0.0.0", 9100)
    assert server["autostart"] is True
    assert manager.get_render_config() == {"browser_path": "", "timeout_seconds": None}
    assert manager.get_printing_config()["timeout_seconds"] == 120


def test_empty_address_falls_back_to_localhost(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"server": {"ip": "", "port": None}}), encoding="utf-8")

    server = ConfigManager(str(config_path)).get_server_config()

    assert (server["ip"], server["port"]) == ("localhost", 3179)


def test_invalid_file_falls_back_to_defaults(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text("{not json", encoding="utf-8")

    manager = ConfigManager(str(config_path))

    assert manager.get_server_config()["port"] == 3179
    assert (tmp_path / "config.json.backup").read_text(encoding="utf-8") == "{not json"


def test_update_is_persisted(tmp_path):
    config_path = tmp_path / "config.json"
    manager = ConfigManager(str(config_path))

    manager.update_config({"log_level": "DEBUG"})

    assert ConfigManager(str(config_path)).get_config()["log_level"] == "DEBUG"


def test_get_config_returns_a_copy(tmp_path):
    manager = ConfigManager(str(tmp_path / "config.json"))

    manager.get_config()["server"]["port"] = 1

    assert manager.get_server_config()["port"] == 3179
