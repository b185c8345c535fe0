import json

from mtaa.config.loader import (
    API_URL_ENV,
    camel_to_snake,
    convert_keys,
    convert_to_camel,
    load_config,
    save_config,
    snake_to_camel,
)
from mtaa.config.schema import DEFAULT_API_URL, ApiConfig, Config


def test_camel_to_snake_basic() -> None:
    assert camel_to_snake("baseUrl") == "base_url"
    assert camel_to_snake("dataDir") == "data_dir"


def test_snake_to_camel_basic() -> None:
    assert snake_to_camel("base_url") == "baseUrl"
    assert snake_to_camel("data_dir") == "dataDir"


def test_convert_keys_nested() -> None:
    data = {"api": {"baseUrl": "http://x", "timeout": 5}, "dataDir": "/tmp/m"}
    out = convert_keys(data)
    assert out["api"]["base_url"] == "http://x"
    assert out["data_dir"] == "/tmp/m"


def test_convert_to_camel_nested() -> None:
    data = {"api": {"base_url": "http://x"}, "data_dir": "/tmp/m"}
    out = convert_to_camel(data)
    assert out["api"]["baseUrl"] == "http://x"
    assert out["dataDir"] == "/tmp/m"


def test_defaults_without_file_or_env(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv(API_URL_ENV, raising=False)

    config = load_config(tmp_path / "missing.json")

    assert config.api.base_url == DEFAULT_API_URL
    assert config.api.timeout == 30.0


def test_file_values_are_loaded(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv(API_URL_ENV, raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api": {"baseUrl": "https://mtaa.example", "timeout": 10}}))

    config = load_config(path)

    assert config.api.base_url == "https://mtaa.example"
    assert config.api.timeout == 10.0


def test_env_overrides_file(tmp_path, monkeypatch) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api": {"baseUrl": "https://mtaa.example"}}))
    monkeypatch.setenv(API_URL_ENV, "http://staging.test")

    assert load_config(path).api.base_url == "http://staging.test"


def test_invalid_file_falls_back_to_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv(API_URL_ENV, raising=False)
    path = tmp_path / "config.json"
    path.write_text("{broken")

    assert load_config(path).api.base_url == DEFAULT_API_URL


def test_save_then_load(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv(API_URL_ENV, raising=False)
    path = tmp_path / "nested" / "config.json"

    save_config(Config(api=ApiConfig(base_url="http://saved.test", timeout=3.0)), path)

    assert json.loads(path.read_text())["api"]["baseUrl"] == "http://saved.test"
    assert load_config(path).api.base_url == "http://saved.test"


def test_wrong_shape_falls_back_to_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv(API_URL_ENV, raising=False)
    path = tmp_path / "config.json"

    for data in ({"api": ["x"]}, ["x"], {"api": {"timeout": "soon"}}):
        path.write_text(json.dumps(data))
        config = load_config(path)
        assert config.api.base_url == DEFAULT_API_URL
        assert config.api.timeout == 30.0


def test_non_positive_timeout_falls_back_to_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv(API_URL_ENV, raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api": {"baseUrl": "https://mtaa.example", "timeout": -1}}))

    assert load_config(path).api.timeout == 30.0


def test_env_override_applies_when_file_is_invalid(tmp_path, monkeypatch) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api": ["x"]}))
    monkeypatch.setenv(API_URL_ENV, "http://staging.test")

    assert load_config(path).api.base_url == "http://staging.test"
