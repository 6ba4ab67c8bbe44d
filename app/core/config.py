"""
Incident Tracker Application Configuration
Loads settings from .env file using Pydantic v2 with BaseSettings
"""
from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List
from functools import lru_cache

from app.models.incident import IncidentCategory, IncidentSeverity, IncidentStatus


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ==================== Project Info ====================
    PROJECT_NAME: str = "IncidentTracker API"
    PROJECT_DESCRIPTION: str = "Incident lifecycle tracking with durable file storage and CSV bulk import"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api/incidents"

    # ==================== Server Configuration ====================
    HOST: str = "localhost"
    PORT: int = 3001
    RELOAD: bool = False

    # ==================== CORS & Frontend ====================
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # ==================== Data Storage ====================
    INCIDENTS_FILE_PATH: str = "./data/incidents.json"

    # ==================== Status Workflow ====================
    # Every edge the lifecycle knows about
    STATUS_TRANSITIONS: Dict[str, List[str]] = {
        "OPEN": ["INVESTIGATING", "ARCHIVED"],
        "INVESTIGATING": ["RESOLVED"],
        "RESOLVED": ["ARCHIVED"],
        "ARCHIVED": ["OPEN"],
    }
    # Edges reachable through the plain status update
    GENERIC_STATUS_TRANSITIONS: Dict[str, List[str]] = {
        "OPEN": ["INVESTIGATING"],
        "INVESTIGATING": ["RESOLVED"],
    }
    ARCHIVABLE_STATUSES: List[str] = ["OPEN", "RESOLVED"]
    RESETTABLE_STATUSES: List[str] = ["ARCHIVED"]

    # ==================== Incident Fields ====================
    CATEGORIES: List[str] = [c.value for c in IncidentCategory]
    SEVERITIES: List[str] = [s.value for s in IncidentSeverity]
    TITLE_MIN_LENGTH: int = 5
    TITLE_MAX_LENGTH: int = 200
    DESCRIPTION_MIN_LENGTH: int = 10
    DESCRIPTION_MAX_LENGTH: int = 2000

    # ==================== Bulk Upload ====================
    BULK_UPLOAD_MAX_FILE_SIZE: int = 5242880  # 5MB
    BULK_UPLOAD_ALLOWED_MIME_TYPES: List[str] = ["text/csv", "application/vnd.ms-excel"]

    # ==================== Dashboard ====================
    SHOW_ARCHIVED_BY_DEFAULT: bool = False

    # ==================== Features ====================
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ==================== Configuration Loading ====================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",  # Allow extra environment variables
        validate_default=True,
    )


class IncidentRules(BaseModel):
    """Rule set injected into validation and the status workflow."""

    model_config = ConfigDict(frozen=True)

    transitions: Dict[IncidentStatus, List[IncidentStatus]]
    generic_transitions: Dict[IncidentStatus, List[IncidentStatus]]
    archivable_statuses: List[IncidentStatus]
    resettable_statuses: List[IncidentStatus]
    categories: List[str]
    severities: List[str]
    title_min_length: int
    title_max_length: int
    description_min_length: int
    description_max_length: int

    @classmethod
    def from_settings(cls, settings: "Settings") -> "IncidentRules":
        return cls(
            transitions=settings.STATUS_TRANSITIONS,
            generic_transitions=settings.GENERIC_STATUS_TRANSITIONS,
            archivable_statuses=settings.ARCHIVABLE_STATUSES,
            resettable_statuses=settings.RESETTABLE_STATUSES,
            categories=settings.CATEGORIES,
            severities=settings.SEVERITIES,
            title_min_length=settings.TITLE_MIN_LENGTH,
            title_max_length=settings.TITLE_MAX_LENGTH,
            description_min_length=settings.DESCRIPTION_MIN_LENGTH,
            description_max_length=settings.DESCRIPTION_MAX_LENGTH,
        )


# ==================== Settings Singleton ====================
@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Create default settings instance
settings = get_settings()


# ==================== Helper Functions ====================
def get_cors_origins() -> List[str]:
    """Get CORS allowed origins"""
    return settings.CORS_ORIGINS


def get_incident_rules() -> IncidentRules:
    """Rule set built from the current settings"""
    return IncidentRules.from_settings(get_settings())
