"""Unit tests for config_manager module."""

import os
import stat

import pytest

from rig.config_manager import ConfigManager, RigConfig, parse_bool
from rig.exceptions import ConfigError


class TestRigConfig:
    def test_defaults(self):
        config = RigConfig()
        assert config.default_provider == "gcp"
        assert config.default_region == "us-central1"
        assert config.aws_region == "us-east-1"
        assert config.ai_provider == "local"
        assert config.management_enabled is False

    def test_to_dict_drops_none(self):
        assert "gcp_project" not in RigConfig().to_dict()
        assert RigConfig(gcp_project="p1").to_dict()["gcp_project"] == "p1"

    def test_from_dict_ignores_unknown_keys(self):
        config = RigConfig.from_dict({"default_provider": "aws", "colour": "blue"})
        assert config.default_provider == "aws"
        assert not hasattr(config, "colour")

    def test_from_dict_parses_boolean_strings(self):
        assert RigConfig.from_dict({"management_enabled": "yes"}).management_enabled is True


class TestParseBool:
    @pytest.mark.parametrize("value", ["1", "TRUE", "yes", "on", True])
    def test_true(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "No", "off", False])
    def test_false(self, value):
        assert parse_bool(value) is False

    def test_invalid(self):
        with pytest.raises(ConfigError, match="Expected a boolean"):
            parse_bool("maybe")


class TestLoadAndSave:
    def test_missing_file_gives_defaults(self, temp_config_file):
        assert ConfigManager.load_config(str(temp_config_file)) == RigConfig()

    def test_save_then_load(self, temp_config_file):
        config = RigConfig(default_provider="aws", gcp_project="p1", management_enabled=True)
        path = ConfigManager.save_config(config, str(temp_config_file))

        assert path == temp_config_file.resolve()
        assert ConfigManager.load_config(str(temp_config_file)) == config

    def test_saved_file_is_owner_only(self, temp_config_file):
        ConfigManager.save_config(RigConfig(), str(temp_config_file))
        assert stat.S_IMODE(os.stat(temp_config_file).st_mode) == 0o600

    def test_insecure_permissions_are_fixed_on_load(self, temp_config_file):
        temp_config_file.write_text('default_provider = "aws"\n')
        os.chmod(temp_config_file, 0o644)

        config = ConfigManager.load_config(str(temp_config_file))

        assert config.default_provider == "aws"
        assert stat.S_IMODE(os.stat(temp_config_file).st_mode) == 0o600

    def test_comments_survive_save(self, temp_config_file):
        temp_config_file.write_text('# my settings\ndefault_provider = "gcp"\n')
        ConfigManager.update_config(str(temp_config_file), default_provider="aws")
        text = temp_config_file.read_text()
        assert "# my settings" in text
        assert 'default_provider = "aws"' in text

    def test_invalid_toml(self, temp_config_file):
        temp_config_file.write_text("this is = = not toml")
        with pytest.raises(ConfigError, match="Failed to load config"):
            ConfigManager.load_config(str(temp_config_file))

    def test_rig_config_environment_variable(self, temp_config_file, monkeypatch):
        temp_config_file.write_text('aws_region = "eu-west-3"\n')
        monkeypatch.setenv("RIG_CONFIG", str(temp_config_file))
        assert ConfigManager.load_config().aws_region == "eu-west-3"

    def test_path_outside_allowed_directories(self):
        with pytest.raises(ConfigError, match="outside allowed directories"):
            ConfigManager.get_config_path("/etc/rig/config.toml")


class TestSetValue:
    def test_choice_is_normalized(self, temp_config_file):
        config = ConfigManager.set_value("ai_provider", "Anthropic", str(temp_config_file))
        assert config.ai_provider == "anthropic"
        assert ConfigManager.load_config(str(temp_config_file)).ai_provider == "anthropic"

    def test_boolean_value(self, temp_config_file):
        config = ConfigManager.set_value("management_enabled", "on", str(temp_config_file))
        assert config.management_enabled is True

    def test_empty_project_clears_it(self, temp_config_file):
        ConfigManager.set_value("gcp_project", "p1", str(temp_config_file))
        config = ConfigManager.set_value("gcp_project", "", str(temp_config_file))
        assert config.gcp_project is None
        assert "gcp_project" not in temp_config_file.read_text()

    def test_unknown_key(self, temp_config_file):
        with pytest.raises(ConfigError, match="Unknown config key"):
            ConfigManager.set_value("colour", "blue", str(temp_config_file))

    def test_invalid_choice(self, temp_config_file):
        with pytest.raises(ConfigError, match="Invalid value for default_provider"):
            ConfigManager.set_value("default_provider", "oracle", str(temp_config_file))
        assert not temp_config_file.exists()

    def test_empty_region_rejected(self, temp_config_file):
        with pytest.raises(ConfigError, match="cannot be empty"):
            ConfigManager.set_value("default_region", "  ", str(temp_config_file))
