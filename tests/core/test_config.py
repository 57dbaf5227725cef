"""Tests for shared configuration classes."""

from storysync.core.config import DEFAULT_PRECACHE_MANIFEST, CacheConfig, ServerConfig


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_strips_trailing_slash(self) -> None:
        """Should normalize the server URL."""
        config = ServerConfig(server_url="https://story-api.dicoding.dev/v1/", token="t")
        assert config.server_url == "https://story-api.dicoding.dev/v1"

    def test_defaults(self) -> None:
        """Should use a 30s timeout and verify SSL by default."""
        config = ServerConfig(server_url="http://test", token="t")
        assert config.timeout == 30.0
        assert config.verify_ssl is True

    def test_is_secure(self) -> None:
        """Should detect HTTPS URLs."""
        assert ServerConfig(server_url="https://api", token="t").is_secure
        assert not ServerConfig(server_url="http://api", token="t").is_secure


class TestCacheConfig:
    """Tests for CacheConfig."""

    def test_partition_names(self) -> None:
        """Should derive versioned partition names."""
        config = CacheConfig()
        assert config.static_partition == "storysync-static-v1"
        assert config.api_partition == "storysync-api-v1"
        assert config.image_partition == "storysync-images-v1"

    def test_version_bump_renames_partitions(self) -> None:
        """Should rename every partition when the version changes."""
        old = CacheConfig(version="v1")
        new = CacheConfig(version="v2")
        assert old.expected_partitions.isdisjoint(new.expected_partitions)
        assert new.expected_partitions == {
            "storysync-static-v2",
            "storysync-api-v2",
            "storysync-images-v2",
        }

    def test_precache_urls(self) -> None:
        """Should resolve the manifest against the app origin."""
        config = CacheConfig(app_origin="http://localhost:8080/")
        urls = config.precache_urls()
        assert len(urls) == len(DEFAULT_PRECACHE_MANIFEST)
        assert urls[0] == "http://localhost:8080/"
        assert "http://localhost:8080/index.html" in urls

    def test_app_shell_url(self) -> None:
        """Should build the app shell URL."""
        config = CacheConfig(app_origin="http://app.test")
        assert config.app_shell_url == "http://app.test/index.html"
