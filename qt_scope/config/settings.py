"""Application configuration for qt-scope."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """qt-scope settings loaded from environment.

    Defaults reproduce the stock ranking heuristics; override with
    ``QT_SCOPE_*`` environment variables or a ``.env`` file.
    """

    # Ranking
    top_n: int = 5
    skew_expansion_ratio: float = 1.5

    # Anomaly scan ("busy but not moving data")
    anomaly_elapsed_factor: float = 2.0
    anomaly_input_factor: float = 0.5
    anomaly_rate_factor: float = 0.2

    # Plan-side vertex importance
    plan_memory_weight: float = 0.7
    plan_complexity_weight: float = 0.3
    complex_operator_markers: str = "Sort,Aggregate,Join"

    # Document shapes
    runtime_vertex_prefix: str = "SV"
    plan_vertex_element: str = "ScopeVertex"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "QT_SCOPE_"
        env_file = ".env"

    @property
    def complex_markers(self) -> tuple[str, ...]:
        """Class-name substrings that mark an operator as complex."""
        return tuple(m.strip() for m in self.complex_operator_markers.split(",") if m.strip())


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
