"""Schema returned by the service status checks."""

from pydantic import BaseModel


class ServiceCheckResponse(BaseModel):
    success: bool
    message: str
