"""
User preferences schemas (Pydantic).
"""
from pydantic import BaseModel, UUID4
from datetime import datetime
from typing import Optional, Dict, Any


class PreferencesPatch(BaseModel):
    """Partial document; nested objects merge, null removes a key."""
    preferences: Dict[str, Any]


class PreferencesResponse(BaseModel):
    user_id: UUID4
    preferences: Dict[str, Any]
    version: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
