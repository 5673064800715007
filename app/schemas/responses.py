# ============================================================================
# Common Response Schemas
# ============================================================================
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from datetime import datetime

class CamelModel(BaseModel):
    """Base for payloads exchanged with the web client (camelCase on the wire)"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

class MessageResponse(BaseModel):
    message: str

class HealthCheckResponse(BaseModel):
    status: str
    app: str
    timestamp: datetime
