"""Settings from the environment and boundary validators."""

import pytest

from content_quality import config
from content_quality.config import DEFAULT_CORS_ORIGINS, default_criteria, load_settings, reload_settings
from content_quality.errors import ValidationError
from content_quality.security.validators import (
    validate_length,
    validate_list_size,
    validate_not_empty,
    validate_positive_number,
    validate_url,
)

ENV_VARS = [
    "QUALITY_MIN_SCORE",
    "QUALITY_MAX_HIGH_ISSUES",
    "QUALITY_STAGE_MINIMUMS",
    "QUALITY_MAX_ITERATIONS",
    "QUALITY_STAGE_TIMEOUT",
    "QUALITY_STAGE_WEIGHTS",
    "QUALITY_VARIATION_SEED",
    "QUALITY_CHECK_SOURCES",
    "QUALITY_SOURCE_TIMEOUT",
    "CORS_ORIGINS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch
    config._settings = None


class TestLoadSettings:
    """Environment parsing with fallbacks."""

    def test_defaults(self, clean_env):
        settings = load_settings()
        assert settings.min_score == 80.0
        assert settings.max_high_issues == 0
        assert settings.max_iterations == 3
        assert settings.stage_timeout == 10.0
        assert settings.stage_weights is None
        assert settings.check_sources is False
        assert settings.cors_origins == DEFAULT_CORS_ORIGINS

    def test_overrides(self, clean_env):
        clean_env.setenv("QUALITY_MIN_SCORE", "70")
        clean_env.setenv("QUALITY_MAX_ITERATIONS", "5")
        clean_env.setenv("QUALITY_STAGE_MINIMUMS", "eeat=60, sources=50")
        clean_env.setenv("QUALITY_CHECK_SOURCES", "yes")
        clean_env.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        settings = load_settings()
        assert settings.min_score == 70.0
        assert settings.max_iterations == 5
        assert settings.stage_minimums == {"eeat": 60.0, "sources": 50.0}
        assert settings.check_sources is True
        assert settings.cors_origins == ("https://a.example", "https://b.example")

    @pytest.mark.parametrize("name,raw,attribute,default", [
        ("QUALITY_MIN_SCORE", "high", "min_score", 80.0),
        ("QUALITY_MIN_SCORE", "-5", "min_score", 80.0),
        ("QUALITY_MAX_ITERATIONS", "0", "max_iterations", 3),
        ("QUALITY_MAX_ITERATIONS", "2.5", "max_iterations", 3),
        ("QUALITY_STAGE_TIMEOUT", "0", "stage_timeout", 10.0),
        ("QUALITY_STAGE_WEIGHTS", "intent=lots", "stage_weights", None),
    ])
    def test_malformed_values_fall_back(self, clean_env, name, raw, attribute, default):
        clean_env.setenv(name, raw)
        assert getattr(load_settings(), attribute) == default

    def test_malformed_value_logs_warning(self, clean_env, caplog):
        clean_env.setenv("QUALITY_MIN_SCORE", "high")
        with caplog.at_level("WARNING", logger="content_quality.config"):
            load_settings()
        assert "QUALITY_MIN_SCORE" in caplog.text

    def test_reload_picks_up_changes(self, clean_env):
        assert reload_settings().min_score == 80.0
        clean_env.setenv("QUALITY_MIN_SCORE", "65")
        assert config.get_settings().min_score == 80.0
        assert reload_settings().min_score == 65.0
        assert config.get_settings().min_score == 65.0

    def test_default_criteria(self, clean_env):
        clean_env.setenv("QUALITY_MIN_SCORE", "75")
        clean_env.setenv("QUALITY_MAX_HIGH_ISSUES", "2")
        criteria = default_criteria(load_settings())
        assert criteria.minimum_overall_score == 75.0
        assert criteria.max_high_severity_issues == 2


class TestValidators:
    """Boundary checks raise ValidationError with the field name."""

    def test_not_empty(self):
        assert validate_not_empty("  text  ") == "text"
        for bad in (None, "", "   ", 5):
            with pytest.raises(ValidationError):
                validate_not_empty(bad, "content")

    def test_length(self):
        assert validate_length("abc", max_length=3) == "abc"
        with pytest.raises(ValidationError, match="at most 3"):
            validate_length("abcd", "content", max_length=3)

    def test_positive_number(self):
        assert validate_positive_number(2) == 2.0
        with pytest.raises(ValidationError, match="stageTimeoutSeconds"):
            validate_positive_number(0, "stageTimeoutSeconds")

    def test_list_size(self):
        with pytest.raises(ValidationError):
            validate_list_size(["a"] * 3, "keywords", max_items=2)


class TestValidateUrl:
    """Cited URLs are screened before scoring or fetching."""

    @pytest.mark.parametrize("url", [
        "https://www.cdc.gov/flu",
        "http://example.org/page",
    ])
    def test_allowed(self, url):
        assert validate_url(url) == url

    @pytest.mark.parametrize("url", [
        "file:///etc/passwd",
        "javascript:alert(1)",
        "ftp://example.org/file",
        "http://localhost:8000/admin",
        "http://127.0.0.1/",
        "http://10.0.0.5/",
        "http://192.168.1.1/",
        "http://169.254.169.254/latest/meta-data",
        "http://[::1]/",
        "http://metadata.google.internal/",
        "http://db.internal/",
        "https://",
        "",
    ])
    def test_blocked(self, url):
        with pytest.raises(ValidationError):
            validate_url(url)

    def test_private_allowed_when_requested(self):
        assert validate_url("http://10.0.0.5/", allow_private=True) == "http://10.0.0.5/"
