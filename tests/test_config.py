import pytest

from app.core.config import Settings, parse_list_from_env, settings


class TestParseListFromEnv:
    """Tests pour la fonction utilitaire parse_list_from_env."""

    def test_parse_direct(self):
        assert parse_list_from_env(["cassius-web", "cassius-mobile"]) == [
            "cassius-web",
            "cassius-mobile",
        ]

    def test_parse_comma_separated_with_spaces(self):
        result = parse_list_from_env("  http://localhost:5173 , https://cassius.app  ")
        assert result == ["http://localhost:5173", "https://cassius.app"]

    def test_parse_json_format(self):
        assert parse_list_from_env('["localhost", "*.cassius.app"]') == ["localhost", "*.cassius.app"]

    def test_parse_empty_string(self):
        assert parse_list_from_env("   ", "TRUSTED_HOSTS") == []

    def test_empty_values_filtered(self):
        assert parse_list_from_env("a,,b, ,") == ["a", "b"]

    def test_invalid_json_format(self):
        with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
            parse_list_from_env('["a", ', "ALLOWED_ORIGINS")

    def test_invalid_type(self):
        with pytest.raises(ValueError):
            parse_list_from_env(42, "KEYCLOAK_ALLOWED_AZP")


class TestSettings:
    def test_api_prefix(self):
        assert settings.get_api_prefix() == "/api/v1"
        assert settings.get_api_prefix("v2") == "/api/v2"

    def test_keycloak_issuer_strips_trailing_slash(self):
        custom = settings.model_copy(
            update={"KEYCLOAK_SERVER_URL": "https://auth.cassius.app/", "KEYCLOAK_REALM": "cassius"}
        )

        assert custom.keycloak_issuer == "https://auth.cassius.app/realms/cassius"

    def test_allowed_azp_from_comma_separated_env(self, monkeypatch):
        monkeypatch.setenv("KEYCLOAK_ALLOWED_AZP", "cassius-web,cassius-mobile")

        assert Settings().KEYCLOAK_ALLOWED_AZP == ["cassius-web", "cassius-mobile"]

    def test_test_environment(self):
        """conftest.py applique l'environnement de test avant l'import des settings."""
        assert settings.ENVIRONMENT == "test"
        assert settings.SCHEDULER_ENABLED is False

    def test_clinical_thresholds_defaults(self):
        assert Settings.model_fields["ISQ_LOW_THRESHOLD"].default == 56
        assert Settings.model_fields["DAYS_NO_RECENT_APPOINTMENT"].default == 180
