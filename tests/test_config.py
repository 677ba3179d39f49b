import pytest

from peershare.config import Config, read_config


def test_defaults_without_file(tmp_path):
    cfg = read_config(search_dirs=[tmp_path], environ={})
    assert cfg == Config(host="127.0.0.1", port=1378, discovery_period=20, waiting_time=100)


def test_file_overrides_defaults(tmp_path):
    (tmp_path / "config.yml").write_text("port: 4000\nwaiting: 7\n")
    cfg = read_config(search_dirs=[tmp_path], environ={})
    assert cfg.port == 4000
    assert cfg.waiting_time == 7
    assert cfg.host == "127.0.0.1"
    assert cfg.discovery_period == 20


def test_first_search_dir_wins(tmp_path):
    first = tmp_path / "a"
    second = tmp_path / "b"
    first.mkdir()
    second.mkdir()
    (first / "config.yml").write_text("port: 4001\n")
    (second / "config.yml").write_text("port: 4002\n")
    assert read_config(search_dirs=[first, second], environ={}).port == 4001
    assert read_config(search_dirs=[second, first], environ={}).port == 4002


def test_environment_overrides_file(tmp_path):
    (tmp_path / "config.yml").write_text("port: 4000\n")
    cfg = read_config(
        search_dirs=[tmp_path],
        environ={"P2P_PORT": "5000", "P2P_HOST": "0.0.0.0", "P2P_PERIOD": "3"},
    )
    assert cfg.port == 5000
    assert cfg.host == "0.0.0.0"
    assert cfg.discovery_period == 3


def test_invalid_environment_value(tmp_path):
    with pytest.raises(ValueError):
        read_config(search_dirs=[tmp_path], environ={"P2P_PORT": "abc"})


def test_non_mapping_file_rejected(tmp_path):
    (tmp_path / "config.yml").write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        read_config(search_dirs=[tmp_path], environ={})