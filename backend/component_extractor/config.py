from dataclasses import dataclass
from functools import lru_cache
from typing import Literal
import os

from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class DeploymentProfile:
    """Option defaults for one kind of deployment."""
    max_components: int
    timeout_ms: int
    skip_screenshots: bool
    min_component_size: int


PROFILES = {
    "development": DeploymentProfile(
        max_components=50, timeout_ms=60000, skip_screenshots=False, min_component_size=10,
    ),
    "production": DeploymentProfile(
        max_components=40, timeout_ms=45000, skip_screenshots=True, min_component_size=10,
    ),
    # Serverless hosts have tight memory and wall-clock limits
    "serverless": DeploymentProfile(
        max_components=25, timeout_ms=25000, skip_screenshots=True, min_component_size=20,
    ),
}


class Settings(BaseSettings):
    deployment: Literal["development", "production", "serverless"] = "production"
    log_level: str = "INFO"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Browser
    viewport_width: int = 1920
    viewport_height: int = 1080
    page_load_timeout: int = 30000  # milliseconds
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )
    blocked_resource_types: list[str] = ["media"]
    max_concurrent_sessions: int = 2

    # Extraction
    batch_size: int = 5
    max_tree_nodes: int = 600  # per fragment
    max_recursive_nodes: int = 400
    collect_stylesheet_rules: bool = True

    # Cache / history
    cache_ttl_seconds: int = 300
    metrics_history_size: int = 10

    class Config:
        # Look for .env in the repo root (two levels up from backend/component_extractor/)
        _env_path = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
        env_file = _env_path if os.path.exists(_env_path) else None
        env_file_encoding = "utf-8"
        env_prefix = "EXTRACTOR_"
        extra = "ignore"

    @property
    def profile(self) -> DeploymentProfile:
        return PROFILES[self.deployment]


@lru_cache()
def get_settings():
    return Settings()
