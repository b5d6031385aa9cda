"""
Unit tests for fsbridge.options module.

Tests cover:
- Defaults layered under caller overrides
- Strict vs permissive handling of unknown keys
- Validation of recognized option values
- Immutability of the resolved Config
"""

from dataclasses import FrozenInstanceError

import pytest

from fsbridge.errors import InvalidConfig
from fsbridge.options import Config, ConfigResolver


class TestConfigResolverResolve:
    """Tests for ConfigResolver.resolve."""

    def test_empty_overrides_give_empty_config(self):
        config = ConfigResolver().resolve()
        assert config == Config()
        assert config.to_dict() == {}

    def test_defaults_are_applied(self):
        resolver = ConfigResolver(defaults={"visibility": "private"})
        assert resolver.resolve({}).visibility == "private"

    def test_override_wins_over_default(self):
        resolver = ConfigResolver(defaults={"visibility": "private"})
        assert resolver.resolve({"visibility": "public"}).visibility == "public"

    def test_none_override_clears_default(self):
        resolver = ConfigResolver(defaults={"visibility": "private"})
        assert resolver.resolve({"visibility": None}).visibility is None

    def test_all_recognized_options(self):
        config = ConfigResolver().resolve(
            {
                "visibility": "public",
                "mimetype": "text/csv",
                "size": 42,
                "timestamp": 1700000000,
                "directory_attributes": {"owner": "ops"},
            }
        )
        assert config.visibility == "public"
        assert config.mimetype == "text/csv"
        assert config.size == 42
        assert config.timestamp == 1700000000
        assert dict(config.directory_attributes) == {"owner": "ops"}

    def test_accepts_config_instance(self):
        original = Config(visibility="private", size=3)
        assert ConfigResolver().resolve(original) == original

    def test_rejects_non_mapping(self):
        with pytest.raises(InvalidConfig, match="mapping"):
            ConfigResolver().resolve(["visibility", "public"])


class TestConfigResolverStrictness:
    """Tests for unknown key handling."""

    def test_strict_rejects_unknown_key(self):
        with pytest.raises(InvalidConfig, match="Unrecognized option: ACL"):
            ConfigResolver(strict=True).resolve({"ACL": "public-read"})

    def test_permissive_drops_unknown_key(self):
        config = ConfigResolver(strict=False).resolve({"ACL": "public-read", "size": 1})
        assert config.to_dict() == {"size": 1}

    def test_malformed_value_rejected_in_permissive_mode(self):
        with pytest.raises(InvalidConfig):
            ConfigResolver(strict=False).resolve({"visibility": "world-readable"})

    def test_unknown_default_rejected(self):
        with pytest.raises(InvalidConfig):
            ConfigResolver(defaults={"ttl": 5})

    def test_invalid_config_is_value_error(self):
        with pytest.raises(ValueError):
            ConfigResolver().resolve({"nope": 1})


class TestOptionValidation:
    """Tests for per-option value checks."""

    @pytest.mark.parametrize("size", [-1, 1.5, "10", True])
    def test_invalid_size(self, size):
        with pytest.raises(InvalidConfig):
            ConfigResolver().resolve({"size": size})

    @pytest.mark.parametrize("timestamp", ["yesterday", False])
    def test_invalid_timestamp(self, timestamp):
        with pytest.raises(InvalidConfig):
            ConfigResolver().resolve({"timestamp": timestamp})

    def test_float_timestamp_accepted(self):
        assert ConfigResolver().resolve({"timestamp": 1.5}).timestamp == 1.5

    @pytest.mark.parametrize("mimetype", ["", 5])
    def test_invalid_mimetype(self, mimetype):
        with pytest.raises(InvalidConfig):
            ConfigResolver().resolve({"mimetype": mimetype})

    def test_directory_attributes_must_be_mapping(self):
        with pytest.raises(InvalidConfig, match="directory_attributes"):
            ConfigResolver().resolve({"directory_attributes": ["owner"]})


class TestConfigValue:
    """Tests for the resolved Config object."""

    def test_config_is_frozen(self):
        config = ConfigResolver().resolve({"visibility": "public"})
        with pytest.raises(FrozenInstanceError):
            config.visibility = "private"

    def test_directory_attributes_are_read_only(self):
        attrs = {"owner": "ops"}
        config = ConfigResolver().resolve({"directory_attributes": attrs})
        with pytest.raises(TypeError):
            config.directory_attributes["owner"] = "dev"
        attrs["owner"] = "dev"
        assert config.directory_attributes["owner"] == "ops"

    def test_get_with_default(self):
        config = Config(size=10)
        assert config.get("size") == 10
        assert config.get("mimetype", "text/plain") == "text/plain"
        assert config.get("unknown", "fallback") == "fallback"

    def test_defaults_property_is_a_copy(self):
        resolver = ConfigResolver(defaults={"visibility": "public"})
        resolver.defaults["visibility"] = "private"
        assert resolver.defaults == {"visibility": "public"}
