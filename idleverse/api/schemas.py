"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between a client and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has expired
- INVALID_TARGET: Unknown building/helper/achievement id, or already unlocked
- INSUFFICIENT_RESOURCES: Not enough resources for the purchase
- RESEARCH_UNAVAILABLE: Research already running or unaffordable
- PRESTIGE_UNAVAILABLE: Nothing to gain from a prestige reset yet
- SNAPSHOT_CORRUPT: Save code could not be decoded
- VALIDATION_ERROR: Request parameters are invalid
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_TARGET = "INVALID_TARGET"
    INSUFFICIENT_RESOURCES = "INSUFFICIENT_RESOURCES"
    RESEARCH_UNAVAILABLE = "RESEARCH_UNAVAILABLE"
    PRESTIGE_UNAVAILABLE = "PRESTIGE_UNAVAILABLE"
    SNAPSHOT_CORRUPT = "SNAPSHOT_CORRUPT"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class CheatName(str, Enum):
    """Developer console commands."""
    ADD_RESOURCES = "ADD_RESOURCES"
    ADD_SHARDS = "ADD_SHARDS"
    FORCE_EVOLVE = "FORCE_EVOLVE"
    TIME_WARP = "TIME_WARP"
    UNLOCK_ACHIEVEMENTS = "UNLOCK_ACHIEVEMENTS"


# =============================================================================
# Shared Models
# =============================================================================

class BuildingInfo(BaseModel):
    """A production building."""
    building_id: str
    name: str
    description: str
    count: int = 0
    cost: int = Field(..., description="Price of the next unit")
    base_production: float
    production_per_second: float = Field(0.0, description="Output of all units, before prestige")
    cost_multiplier: float
    tier: str
    flavor_text: str = ""
    just_unlocked: bool = False


class HelperInfo(BaseModel):
    """An automation helper."""
    helper_id: str
    name: str
    description: str
    helper_type: str = Field(description="CLICK, BUY or RESEARCH")
    cost: float
    interval_ms: int
    unlocked: bool
    active: bool
    bonus_multiplier: float = 1.0


class AchievementInfo(BaseModel):
    """An achievement. Hidden achievements are omitted until unlocked."""
    achievement_id: str
    name: str
    description: str
    unlocked: bool
    icon: str
    flavor_text: Optional[str] = None


class LogInfo(BaseModel):
    """One log line."""
    log_id: str
    message: str
    timestamp: float
    log_type: str


class ResearchInfo(BaseModel):
    """Research protocol status."""
    active: bool = False
    can_begin: bool = False
    cost: float
    duration_ms: int
    progress: float = Field(0.0, ge=0.0, le=1.0)
    remaining_ms: float = 0.0


class PrestigeInfo(BaseModel):
    """Prestige status."""
    currency: float
    multiplier: float
    potential_gain: int
    can_prestige: bool


# =============================================================================
# Request Models
# =============================================================================

class CreateUniverseRequest(BaseModel):
    """Request to create a new universe."""
    galaxy_name: Optional[str] = Field(None, max_length=64, description="Name for the galaxy")
    save_code: Optional[str] = Field(None, description="Start from an exported save instead")


class ClickRequest(BaseModel):
    """Request to click the core one or more times."""
    count: int = Field(1, ge=1, le=100, description="Number of clicks")


class RenameRequest(BaseModel):
    """Request to rename the galaxy."""
    name: str = Field(..., min_length=1, max_length=64)


class CheatRequest(BaseModel):
    """Request to run a developer console command."""
    kind: CheatName


class ImportSaveRequest(BaseModel):
    """Request to replace the universe with an exported save."""
    save_code: str = Field(..., min_length=1)


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class UniverseResponse(BaseModel):
    """Complete universe state for display."""
    session_id: str
    galaxy_name: str
    theme: str
    resource_name: str
    tier: str
    resources: float
    production_per_second: float
    click_value: float
    total_resources_generated: float
    lifetime_total_resources: float
    total_clicks: int
    click_power: float
    generation_count: int = 0
    epoch: int = 0

    buildings: list[BuildingInfo] = Field(default_factory=list)
    helpers: list[HelperInfo] = Field(default_factory=list)
    achievements: list[AchievementInfo] = Field(default_factory=list)
    achievement_queue: list[str] = Field(
        default_factory=list, description="Unlocked achievement ids not yet dismissed"
    )
    logs: list[LogInfo] = Field(default_factory=list)

    research: ResearchInfo
    prestige: PrestigeInfo
    api_version: str = "v1"


class ActionResponse(BaseModel):
    """Response after a player intent was applied."""
    session_id: str
    success: bool
    changes: list[str] = Field(default_factory=list)
    universe: UniverseResponse
    api_version: str = "v1"


class SaveResponse(BaseModel):
    """An exported save code."""
    session_id: str
    save_code: str
    api_version: str = "v1"


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
