"""Shared configuration classes for storysync.

This module defines the configuration used by the API client (ServerConfig)
and by the request router and its response cache (CacheConfig).
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_API_URL = "https://story-api.dicoding.dev/v1"

DEFAULT_PRECACHE_MANIFEST = (
    "/",
    "/index.html",
    "/manifest.json",
    "/images/icon-192x192.png",
    "/images/icon-512x512.png",
)


@dataclass
class ServerConfig:
    """Configuration for connecting to the story API.

    Attributes:
        server_url: Base URL of the API (e.g., "https://story-api.dicoding.dev/v1").
        token: Bearer token of the logged-in user.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")


@dataclass
class CacheConfig:
    """Configuration for the request router and its cache partitions.

    Bumping ``version`` renames all three partitions; the old ones are
    purged the next time the router is activated.

    Attributes:
        prefix: Common prefix of the partition names.
        version: Version suffix of the partition names.
        app_origin: Origin the precache manifest is resolved against.
        precache: Paths warmed into the static partition on install.
        app_shell: Path served for navigations when the network is down.
        api_markers: Path fragments identifying API requests.
        bypass_markers: Path fragments of dev-tooling requests never cached.
        image_extensions: File extensions treated as images.
    """

    prefix: str = "storysync"
    version: str = "v1"
    app_origin: str = "http://localhost:8080"
    precache: tuple[str, ...] = DEFAULT_PRECACHE_MANIFEST
    app_shell: str = "/index.html"
    api_markers: tuple[str, ...] = ("/stories", "/notifications")
    bypass_markers: tuple[str, ...] = ("/__dev", "hot-update", "sockjs-node")
    image_extensions: tuple[str, ...] = field(
        default=(".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp")
    )

    def __post_init__(self) -> None:
        """Normalize app origin."""
        self.app_origin = self.app_origin.rstrip("/")

    @property
    def static_partition(self) -> str:
        """Name of the partition holding the app shell and assets."""
        return f"{self.prefix}-static-{self.version}"

    @property
    def api_partition(self) -> str:
        """Name of the partition holding API responses."""
        return f"{self.prefix}-api-{self.version}"

    @property
    def image_partition(self) -> str:
        """Name of the partition holding images."""
        return f"{self.prefix}-images-{self.version}"

    @property
    def expected_partitions(self) -> frozenset[str]:
        """Partitions that survive activation."""
        return frozenset(
            {self.static_partition, self.api_partition, self.image_partition}
        )

    def precache_urls(self) -> list[str]:
        """Absolute URLs of the precache manifest."""
        return [self.app_origin + path for path in self.precache]

    @property
    def app_shell_url(self) -> str:
        """Absolute URL of the cached app shell."""
        return self.app_origin + self.app_shell
