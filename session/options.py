"""
Construction-time options of the document session store.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class SessionStoreConfig:
    """
    Options of a DocumentSessionStore.

    Attributes:
        ttl_override: TTL in seconds for sessions without a cookie max-age.
            None falls back to one day.
        key_prefix: Prefix prepended to session ids to build document ids
        disable_ttl_refresh: Turn touch() into a no-op
        expiry_index_name: Name of the expired-sessions index
        expiry_index_design_name: Namespace the expiry index is stored under
        max_expired_per_cleanup: Maximum sessions deleted per cleanup run
        connection_check_timeout: Seconds allowed for the reachability probe
    """
    ttl_override: Optional[int] = None
    key_prefix: str = "sess:"
    disable_ttl_refresh: bool = False
    expiry_index_name: str = "express_expired_sessions"
    expiry_index_design_name: str = "expired_sessions"
    max_expired_per_cleanup: int = 100
    connection_check_timeout: float = 5.0

    def __post_init__(self):
        if self.ttl_override is not None and self.ttl_override < 0:
            raise ValueError("ttl_override must be >= 0")
        if self.max_expired_per_cleanup < 1:
            raise ValueError("max_expired_per_cleanup must be >= 1")

    @classmethod
    def from_settings(cls, settings: Any) -> "SessionStoreConfig":
        return cls(
            ttl_override=settings.session_ttl_override,
            key_prefix=settings.session_key_prefix,
            disable_ttl_refresh=settings.session_disable_ttl_refresh,
            expiry_index_name=settings.expiry_index_name,
            expiry_index_design_name=settings.expiry_index_design_name,
            max_expired_per_cleanup=settings.max_expired_per_cleanup,
            connection_check_timeout=settings.connection_check_timeout,
        )
