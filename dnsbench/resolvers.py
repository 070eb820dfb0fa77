"""
Built-in server and domain configurations.

Provides pre-configured public DNS resolvers (primary + secondary
addresses) and the default set of popular websites to resolve.
"""

from .models import ConfigurationError, ServerIdentity


# Pre-configured resolver profiles
SERVERS: dict[str, ServerIdentity] = {
    "google": ServerIdentity(
        name="Google DNS",
        addresses=("8.8.8.8:53", "8.8.4.4:53"),
        description="Google Public DNS",
    ),
    "cloudflare": ServerIdentity(
        name="Cloudflare",
        addresses=("1.1.1.1:53", "1.0.0.1:53"),
        description="Cloudflare's privacy-focused DNS resolver",
    ),
    "quad9": ServerIdentity(
        name="Quad9",
        addresses=("9.9.9.9:53", "149.112.112.112:53"),
        description="Quad9 with malware blocking",
    ),
    "opendns": ServerIdentity(
        name="OpenDNS",
        addresses=("208.67.222.222:53", "208.67.220.220:53"),
        description="Cisco OpenDNS",
    ),
    "nextdns": ServerIdentity(
        name="NextDNS",
        addresses=("45.90.28.0:53", "45.90.30.0:53"),
        description="NextDNS (unconfigured profile)",
    ),
    "tiar": ServerIdentity(
        name="tiar.app",
        addresses=("174.138.21.128:53", "188.166.206.224:53"),
        description="tiar.app public resolver",
    ),
}

DEFAULT_SERVERS = list(SERVERS.keys())

# Popular websites to resolve and load
DEFAULT_DOMAINS = [
    "google.com",
    "facebook.com",
    "youtube.com",
    "x.com",
    "github.com",
    "gitlab.com",
    "netflix.com",
    "microsoft.com",
    "apple.com",
    "cloudflare.com",
    "openai.com",
    "shopee.co.id",
]


def get_server(name: str) -> ServerIdentity:
    """Get a built-in server by key or display name (case-insensitive)."""
    key = name.lower()
    if key in SERVERS:
        return SERVERS[key]
    for server in SERVERS.values():
        if server.name.lower() == key:
            return server
    raise ConfigurationError(
        f"Unknown server: {name}. Available: {list(SERVERS.keys())}"
    )


def parse_server(spec: str) -> ServerIdentity:
    """
    Create a custom server from ``Name=addr[,addr...]``.

    A bare address list (``addr[,addr...]``) uses the first address as
    the server name.

    Raises:
        ConfigurationError: If the spec has no usable address
    """
    name, sep, addresses = spec.partition("=")
    if not sep:
        addresses, name = name, ""

    parts = [a.strip() for a in addresses.split(",") if a.strip()]
    if not parts:
        raise ConfigurationError(f"Invalid server spec: {spec!r}")

    return ServerIdentity(
        name=name.strip() or parts[0],
        addresses=tuple(parts),
        description=f"Custom server at {', '.join(parts)}",
    )


def list_servers() -> list[str]:
    """List all available server keys."""
    return list(SERVERS.keys())
