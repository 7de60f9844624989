"""
Audit Model

Append-only record of every write to requests, users, drivers and vehicles.
"""

import json
from datetime import datetime
from typing import Any
from typing import Dict
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator


class AuditEntry(BaseModel):
    """Audit trail database model."""

    model_config = ConfigDict(from_attributes=True)

    audit_id: int
    entity_type: str
    entity_id: str
    action: str
    performed_by: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    timestamp: datetime

    @field_validator("old_values", "new_values", mode="before")
    @classmethod
    def parse_json(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v
