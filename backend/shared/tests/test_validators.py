import pytest
from pydantic import field_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list


class TestParseStringList:
    def test_json_array_string(self):
        result = parse_string_list('["http://a.com","http://b.com"]')
        assert result == ["http://a.com", "http://b.com"]

    def test_comma_separated_string(self):
        result = parse_string_list("http://a.com,http://b.com")
        assert result == ["http://a.com", "http://b.com"]

    def test_comma_separated_with_whitespace(self):
        result = parse_string_list("http://a.com , http://b.com")
        assert result == ["http://a.com", "http://b.com"]

    def test_passthrough_list(self):
        origins = ["http://a.com", "http://b.com"]
        result = parse_string_list(origins)
        assert result == origins

    def test_empty_string_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list("")

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError, match="Invalid JSON array"):
            parse_string_list("[not valid json")

    def test_json_mixed_types_array_raises(self):
        with pytest.raises(ValueError, match="must be an array of strings"):
            parse_string_list('["http://a.com", 123]')

    def test_json_empty_array_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list("[]")

    def test_empty_list_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list([])

    def test_comma_separated_skips_empty_segments(self):
        result = parse_string_list("http://a.com,,http://b.com,")
        assert result == ["http://a.com", "http://b.com"]

    def test_comma_only_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list(",")

    def test_multiple_commas_only_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list(",,,,")

    def test_allow_empty_list(self):
        assert parse_string_list([], allow_empty=True) == []

    def test_allow_empty_still_rejects_blank_string(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list("  ", allow_empty=True)


class _OriginSettings(BaseSettings):
    model_config = {"env_prefix": "TEST_"}

    cors_origins: list[str] = ["http://localhost"]
    retries: list[int] = [1]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,  # noqa: ARG003
        dotenv_settings,
        file_secret_settings,
    ):
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings


class TestStringListEnvSettingsSource:
    def test_comma_separated_env_reaches_validator(self, monkeypatch):
        monkeypatch.setenv("TEST_CORS_ORIGINS", "http://a.com,http://b.com")

        assert _OriginSettings().cors_origins == ["http://a.com", "http://b.com"]

    def test_json_env_still_accepted(self, monkeypatch):
        monkeypatch.setenv("TEST_CORS_ORIGINS", '["http://a.com"]')

        assert _OriginSettings().cors_origins == ["http://a.com"]

    def test_other_list_fields_decode_json(self, monkeypatch):
        monkeypatch.setenv("TEST_RETRIES", "[2, 3]")

        assert _OriginSettings().retries == [2, 3]
