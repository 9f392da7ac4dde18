"""Unit tests for the provider registry and capability queries."""

import pytest

from database.models import AccountStatus
from factories import make_account
from publishers import registry
from publishers.registry import Capability, Endpoint, ProviderId
from services import capabilities
from services.errors import EndpointNotDefined, UnknownProvider, ProviderUnavailable, CapabilityNotSupported


class TestRegistryLookup:
    """Tests for lookup, list_available and require."""

    def test_lookup_known_provider(self):
        """lookup should return the provider config by id."""
        provider = registry.lookup("youtube")

        assert provider.id == ProviderId.YOUTUBE
        assert provider.name == "YouTube"

    def test_lookup_accepts_enum_members(self):
        """Callers holding a ProviderId get the same config as callers holding the raw string."""
        assert registry.lookup(ProviderId.TIKTOK) is registry.TIKTOK
        assert registry.lookup(ProviderId.YOUTUBE) is registry.lookup("YouTube")

    def test_require_capability_with_enum_member(self):
        assert capabilities.require_capability(ProviderId.TIKTOK, Capability.UPLOAD) is registry.TIKTOK
        with pytest.raises(CapabilityNotSupported):
            capabilities.require_capability(ProviderId.TIKTOK, Capability.SCHEDULING)

    def test_lookup_unknown_provider_returns_none(self):
        """An unknown id is a normal negative result, not an exception."""
        assert registry.lookup("myspace") is None
        assert registry.lookup(None) is None

    def test_list_available_only_returns_enabled_providers(self):
        """Disabled providers are catalogued but not listed."""
        available = {p.id for p in registry.list_available()}

        assert available == {ProviderId.YOUTUBE, ProviderId.TIKTOK}
        assert registry.lookup("instagram").is_available is False

    def test_require_rejects_unknown_and_disabled(self):
        with pytest.raises(UnknownProvider):
            registry.require("myspace")
        with pytest.raises(ProviderUnavailable):
            registry.require("twitter")

    def test_configs_are_immutable(self):
        """Provider configs cannot be mutated at runtime."""
        with pytest.raises(Exception):
            registry.YOUTUBE.is_available = False
        with pytest.raises(TypeError):
            registry.YOUTUBE.endpoints[Endpoint.UPLOAD] = "https://evil.test"


class TestProviderEndpoints:
    """Tests for endpoint resolution."""

    def test_defined_endpoint(self):
        assert registry.TIKTOK.endpoint(Endpoint.TOKEN_REFRESH).startswith("https://")

    def test_undefined_endpoint_raises(self):
        """Asking for an endpoint the provider lacks raises instead of returning None."""
        assert registry.INSTAGRAM.has_endpoint(Endpoint.PLAYLISTS) is False

        with pytest.raises(EndpointNotDefined):
            registry.INSTAGRAM.endpoint(Endpoint.PLAYLISTS)

    def test_to_dict_lists_every_capability(self):
        data = registry.TIKTOK.to_dict()

        assert data["features"]["scheduling"] is False
        assert data["features"]["upload"] is True
        assert set(data["features"]) == {c.value for c in Capability}


class TestCapabilities:
    """Tests for the capability query service."""

    def test_tiktok_has_no_scheduling_regardless_of_account_state(self, store):
        """TikTok scheduling is off for every account, active or not."""
        active = make_account(store, provider="tiktok")
        expired = make_account(store, provider="tiktok", status=AccountStatus.TOKEN_EXPIRED)

        assert capabilities.has_capability(active, "scheduling") is False
        assert capabilities.has_capability(expired, "scheduling") is False
        assert capabilities.has_capability(active, "upload") is True

    def test_youtube_supports_playlists(self, store):
        account = make_account(store, provider="youtube")

        assert capabilities.has_capability(account, Capability.PLAYLISTS) is True

    def test_unknown_capability_is_false(self, store):
        account = make_account(store, provider="youtube")

        assert capabilities.has_capability(account, "teleport") is False

    def test_required_scopes_fall_back_to_write_scope(self):
        """Providers without an upload scope upload with their write scope."""
        assert capabilities.required_scopes("tiktok", "upload") == "video.upload,video.publish"
        assert capabilities.required_scopes("youtube", "upload") == "https://www.googleapis.com/auth/youtube.upload"
        assert capabilities.required_scopes("youtube", "read").endswith("youtube.readonly")

    def test_endpoints_may_be_partial(self):
        endpoints = capabilities.endpoints("instagram")

        assert "upload" in endpoints
        assert "playlists" not in endpoints
        assert capabilities.endpoints("myspace") == {}

    def test_require_capability_fails_fast(self):
        with pytest.raises(CapabilityNotSupported):
            capabilities.require_capability("tiktok", Capability.SCHEDULING)
