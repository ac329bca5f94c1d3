"""
Tests for redirect URL helpers.
"""

from tempo_guide.shared.urls import is_allowed_origin, origin_of, with_query


class TestOriginOf:
    def test_strips_path_and_query(self):
        assert origin_of("https://App.Example.com:8443/settings?tab=1") == "https://app.example.com:8443"

    def test_relative_url_has_no_origin(self):
        assert origin_of("/settings") == ""


class TestIsAllowedOrigin:
    ALLOWED = ["https://app.example.com", "http://localhost:5173"]

    def test_same_origin_any_path(self):
        assert is_allowed_origin("https://app.example.com/plans/1", self.ALLOWED)

    def test_port_must_match(self):
        assert not is_allowed_origin("http://localhost:3000/", self.ALLOWED)

    def test_lookalike_host_rejected(self):
        assert not is_allowed_origin("https://app.example.com.evil.test/", self.ALLOWED)

    def test_relative_url_rejected(self):
        assert not is_allowed_origin("/settings", self.ALLOWED)


class TestWithQuery:
    def test_appends_to_bare_origin(self):
        assert with_query("https://app.example.com", strava="connected") == (
            "https://app.example.com?strava=connected"
        )

    def test_keeps_existing_params(self):
        assert with_query("https://app.example.com/x?tab=1", error="state_expired") == (
            "https://app.example.com/x?tab=1&error=state_expired"
        )
