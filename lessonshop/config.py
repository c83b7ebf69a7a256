"""
Configuration loaded from environment variables.

A ``.env`` file in the working directory is read first, so local
development does not need exported variables.
"""

import os
from typing import Optional

from dotenv import load_dotenv

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings:
    """
    Process configuration for both the API service and the client tier.

    Attributes:
        host: Listen address for the API service
        port: Listen port for the API service
        database_url: MongoDB connection string
        database_name: Database holding the lessons and orders collections
        seed_sample_data: Insert sample lessons into an empty collection
        log_level: Logging level name
        api_base_url: Base URL the client tier talks to
        api_timeout: Per-request timeout for the client tier, in seconds
    """

    def __init__(self, env_file: Optional[str] = None):
        load_dotenv(env_file)

        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "8000"))
        self.database_url = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
        self.database_name = os.getenv("DATABASE_NAME", "lessondb")
        self.seed_sample_data = os.getenv("SEED_SAMPLE_DATA", "true").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        self.api_base_url = os.getenv("API_BASE_URL", "http://localhost:8000/api").rstrip("/")
        self.api_timeout = float(os.getenv("API_TIMEOUT", "10"))

    def validate(self) -> bool:
        """
        Check configuration values.

        Raises:
            ValueError: If any value is out of range, listing every problem
        """
        errors = []

        if self.port <= 0:
            errors.append("PORT must be positive")

        if self.api_timeout <= 0:
            errors.append("API_TIMEOUT must be positive")

        if not self.database_url:
            errors.append("DATABASE_URL is required")

        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(VALID_LOG_LEVELS)}")

        if errors:
            raise ValueError("Configuration validation failed:\n  - " + "\n  - ".join(errors))

        return True
