"""
Impact Simulator Configuration

Loads configuration from environment variables with sensible defaults.
Only this module and logging_utils read the environment; the reducer,
timeline builder and command parser never do.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Scheduler pacing. One virtual tick per interval; the timeline is
    # expressed in ticks so changing this only changes wall-clock duration.
    TICK_INTERVAL_MS: int = int(os.getenv("IMPACTSIM_TICK_INTERVAL_MS", "250"))

    # Number of ranked business scenarios kept in ImpactStats
    TOP_AFFECTED_LIMIT: int = int(os.getenv("IMPACTSIM_TOP_AFFECTED_LIMIT", "5"))

    # IMPACTSIM_VERBOSE and IMPACTSIM_NO_COLOR are read by logging_utils at call time

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    CATALOG_DIR: Path = Path(
        os.getenv("IMPACTSIM_CATALOG_DIR", str(PROJECT_ROOT / "examples" / "catalogs"))
    )

    @classmethod
    def tick_interval_seconds(cls) -> float:
        """Return the tick period in seconds for asyncio.sleep()."""
        return cls.TICK_INTERVAL_MS / 1000.0

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are out of range."""
        if cls.TICK_INTERVAL_MS <= 0:
            raise ValueError(
                "IMPACTSIM_TICK_INTERVAL_MS must be a positive number of milliseconds "
                f"(got {cls.TICK_INTERVAL_MS})"
            )

        if cls.TOP_AFFECTED_LIMIT <= 0:
            raise ValueError(
                "IMPACTSIM_TOP_AFFECTED_LIMIT must be >= 1 "
                f"(got {cls.TOP_AFFECTED_LIMIT})"
            )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Impact Simulator Configuration:",
            f"  Tick Interval: {cls.TICK_INTERVAL_MS}ms",
            f"  Top Affected Limit: {cls.TOP_AFFECTED_LIMIT}",
            f"  Catalog Dir: {cls.CATALOG_DIR}",
        ]
        return "\n".join(lines)
