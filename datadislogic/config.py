from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ApiConfig:
    base_url: str = "https://datadis.es"
    # Point at a local fixture server instead of the real provider
    use_mock_server: bool = False
    mock_server_base_url: str = "http://localhost:8088"
    timeout: float = 30.0  # seconds, enforced by the HTTP layer only

    @property
    def effective_base_url(self) -> str:
        base = self.mock_server_base_url if self.use_mock_server else self.base_url
        return base.rstrip("/")


@dataclass
class CacheConfig:
    contract_ttl_hours: float = 48.0
    consumption_ttl_hours: float = 24.0
    default_ttl_hours: float = 24.0
    # Under quota pressure remove max(evict_min, ceil(evict_fraction * n)) oldest
    evict_min: int = 3
    evict_fraction: float = 0.2


@dataclass
class RetrievalConfig:
    months_to_fetch: int = 12  # look-back from today
    measurement_type: int = 0


@dataclass
class Config:
    api: ApiConfig = field(default_factory=ApiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)


def default_config() -> Config:
    return Config()
