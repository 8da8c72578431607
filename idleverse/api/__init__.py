"""
API Module - Client interface.

Exposes the engine via REST API. A client:
1. Creates a universe session (fresh or from a save code)
2. Sends intents: clicks, purchases, helpers, research, prestige
3. Reads the universe, which advances to "now" on every request
4. Exports the save code to keep its progress

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CreateUniverseRequest,
    ClickRequest,
    RenameRequest,
    CheatRequest,
    ImportSaveRequest,
    # Responses
    UniverseResponse,
    ActionResponse,
    SaveResponse,
    ErrorResponse,
    # Shared
    BuildingInfo,
    HelperInfo,
    AchievementInfo,
    LogInfo,
    ResearchInfo,
    PrestigeInfo,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateUniverseRequest",
    "ClickRequest",
    "RenameRequest",
    "CheatRequest",
    "ImportSaveRequest",
    # Responses
    "UniverseResponse",
    "ActionResponse",
    "SaveResponse",
    "ErrorResponse",
    # Shared
    "BuildingInfo",
    "HelperInfo",
    "AchievementInfo",
    "LogInfo",
    "ResearchInfo",
    "PrestigeInfo",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
