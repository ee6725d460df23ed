"""Configuration management."""

import os
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env for local/dev environments, only for values missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    for key, value in file_env.items():
        if key not in os.environ and value is not None:
            os.environ[key] = value


class FractureSettings(BaseSettings):
    """Numerical tolerances for the fracture core, overridable via FRACTURE_* env vars."""

    model_config = SettingsConfigDict(env_prefix="FRACTURE_", extra="ignore")

    # Polygon clipping
    clipper_scale: float = Field(
        default=1000.0, gt=0, description="Scale applied before rounding to the integer grid"
    )
    duplicate_epsilon: float = Field(
        default=1e-4, ge=0, description="Consecutive vertices closer than this are merged"
    )
    collinear_epsilon: float = Field(
        default=1e-4, ge=0, description="Sine of the turn angle below which a vertex is collinear"
    )
    min_fragment_area: float = Field(
        default=1e-6, ge=0, description="Fragments with smaller area are dropped"
    )
    clip_margin_factor: float = Field(
        default=2.0, ge=2.0, description="Raw-cell rectangle margin as a multiple of the diagonal"
    )

    # Site sampling
    dedup_ratio: float = Field(
        default=1e-4, ge=0, description="Dedup distance as a fraction of min(width, height)"
    )
    dedup_floor: float = Field(default=1e-4, ge=0, description="Lower bound on the dedup distance")
    min_sample_attempts: int = Field(default=200, ge=1, description="Minimum sampling attempts")
    attempts_per_site: int = Field(default=100, ge=1, description="Sampling attempts per requested site")

    # Triangulation
    super_triangle_scale: float = Field(
        default=100.0, gt=1.0, description="Super-triangle size as a multiple of the site extent"
    )
    degenerate_area_ratio: float = Field(
        default=1e-10, ge=0, description="Triangles with |2*area| <= ratio * extent^2 are not created"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")


# Read-only defaults shared by every component that is not given its own settings
settings = FractureSettings()
