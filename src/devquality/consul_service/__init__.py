"""
Consul Discovery Service.

REST facade over a Consul agent:
- Service listing, instance lookup, health and statistics
- Registration request validation
- Runtime, configuration and metrics endpoints
"""

__version__ = "1.0.0"
__author__ = "DevQuality Team"
__email__ = "support@devquality.org"


def get_version() -> str:
    """Get service version."""
    return __version__
