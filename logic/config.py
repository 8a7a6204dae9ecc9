"""
Configuration management module.

This module provides the environment-driven settings for the gateway and the
admin surface, the map constants shared by both views, and the fixed sample
datasets used when the backend cannot be reached.

Date: 2026-10-18
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List

DEFAULT_API_URL = "http://localhost:4000"
DEFAULT_API_TIMEOUT = 10.0
DEFAULT_DATABASE_URL = "sqlite:///./tula_turismo.db"

# Demonstration credentials accepted when the login endpoint is unreachable
DEFAULT_DEMO_EMAIL = "admin@tula.mx"
DEFAULT_DEMO_PASSWORD = "tula2024"
DEMO_TOKEN = "demo-token"

# Map camera (Tula de Allende)
MAP_CENTER = {"lat": 20.0617, "lng": -99.3389}
DEFAULT_ZOOM = 12
FOCUS_ZOOM = 15

MARKER_COLORS = {
    "artisan": "#0ea5e9",
    "place": "#22c55e",
    "editing": "#f59e0b",
    "placement": "#ef4444",
}


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment.

    Attributes:
        api_url: Base URL of the REST backend.
        api_timeout: Total timeout in seconds for a single gateway call.
        demo_email: Email of the demonstration credential pair.
        demo_password: Password of the demonstration credential pair.
        database_url: SQLAlchemy URL of the mutation journal.
    """

    api_url: str
    api_timeout: float
    demo_email: str
    demo_password: str
    database_url: str


def get_settings() -> Settings:
    """Resolve settings from environment variables.

    Read on every call so a changed environment (or a test patching it) is
    picked up without reloading the module.

    Returns:
        Settings instance.
    """
    try:
        timeout = float(os.getenv("TULA_API_TIMEOUT", DEFAULT_API_TIMEOUT))
    except ValueError:
        timeout = DEFAULT_API_TIMEOUT

    return Settings(
        api_url=os.getenv("TULA_API_URL", DEFAULT_API_URL).rstrip("/"),
        api_timeout=timeout,
        demo_email=os.getenv("TULA_DEMO_EMAIL", DEFAULT_DEMO_EMAIL),
        demo_password=os.getenv("TULA_DEMO_PASSWORD", DEFAULT_DEMO_PASSWORD),
        database_url=os.getenv("TULA_DATABASE_URL", DEFAULT_DATABASE_URL),
    )


def get_fallback_artisans() -> List[Dict[str, Any]]:
    """Get the sample artisan dataset shown when the backend is unavailable.

    Returns:
        List with a single raw artisan record.
    """
    return [
        {
            "id": 1,
            "name": "Taller de Alfarería Xóchitl",
            "description": "Piezas de barro bruñido hechas a mano.",
            "category": "Alfarería",
            "lat": 20.0589,
            "lng": -99.3421,
        }
    ]


def get_fallback_places() -> List[Dict[str, Any]]:
    """Get the sample place dataset shown when the backend is unavailable.

    Returns:
        List with a single raw place record.
    """
    return [
        {
            "id": 1,
            "name": "Zona Arqueológica de Tula",
            "description": "Los Atlantes y la antigua ciudad tolteca.",
            "type": "Arqueología",
            "lat": 20.0645,
            "lng": -99.3408,
        }
    ]
