"""
Tests for production configuration loading.

Covers:
- Packaged defaults
- Source precedence (explicit path, PRODUCTION_CONFIG, defaults)
- PRODUCTION_DATABASE_URL override
- Rejection of unknown keys and invalid values
- PRODUCTION_CONFIG_TRACE emission
"""

import pytest

from production_config import (
    CONFIG_PATH_ENV,
    DATABASE_URL_ENV,
    DEFAULT_CONFIG_PATH,
    ProductionConfig,
    get_active_config,
)
from production_config.loader import compute_checksum, load_yaml_file, parse_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


class TestDefaults:
    """The packaged defaults.yaml matches the dataclass defaults."""

    def test_packaged_defaults(self):
        config = get_active_config()

        assert config.binding_process_id == 4
        assert config.cutting_process_id == 2
        assert config.transfer_date_format == "%d-%m-%Y"
        assert config.stored_date_format == "%Y-%m-%d"
        assert config.lot_lock_timeout_seconds == 30.0
        assert config.booklet_type_name == "Booklet"
        assert len(config.checksum) == 64

    def test_defaults_file_lists_every_field(self):
        data = load_yaml_file(DEFAULT_CONFIG_PATH)
        assert set(data) == ProductionConfig.field_names()

    def test_dataclass_defaults_agree(self):
        from_file = get_active_config()
        bare = ProductionConfig()
        for name in ProductionConfig.field_names():
            assert getattr(from_file, name) == getattr(bare, name)


class TestSources:
    """Source precedence and environment overrides."""

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "prod.yaml"
        path.write_text("binding_process_id: 9\nlog_level: debug\n")

        config = get_active_config(path)

        assert config.binding_process_id == 9
        assert config.log_level == "debug"
        assert config.cutting_process_id == 2

    def test_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yaml"
        path.write_text("cutting_process_id: 11\n")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))

        assert get_active_config().cutting_process_id == 11

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://u@localhost/prod")

        config = get_active_config()

        assert config.database_url == "postgresql://u@localhost/prod"

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert get_active_config(path).binding_process_id == 4

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_trace_logged(self, captured_logs, tmp_path):
        path = tmp_path / "trace.yaml"
        path.write_text("log_level: WARNING\n")

        config = get_active_config(path)

        traces = [r for r in captured_logs() if r["message"] == "PRODUCTION_CONFIG_TRACE"]
        assert traces[-1]["config_source"] == str(path)
        assert traces[-1]["checksum"] == config.checksum


class TestValidation:
    """Unknown keys and bad values are rejected."""

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown configuration keys: bogus"):
            parse_config({"bogus": 1})

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            get_active_config(path)

    @pytest.mark.parametrize(
        "data",
        [
            {"binding_process_id": "abc"},
            {"binding_process_id": True},
            {"cutting_process_id": 0},
            {"lot_lock_timeout_seconds": 0},
            {"lot_lock_timeout_seconds": "soon"},
            {"log_level": "LOUD"},
            {"transfer_date_format": "dd-MM-yyyy"},
            {"booklet_type_name": ""},
            {"database_url": None},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ValueError):
            parse_config(data)

    def test_checksum_deterministic(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert parse_config({}).checksum == parse_config({}).checksum
        assert (
            parse_config({"binding_process_id": 5}).checksum
            != parse_config({}).checksum
        )

    def test_config_frozen(self):
        config = ProductionConfig()
        with pytest.raises(AttributeError):
            config.binding_process_id = 1
