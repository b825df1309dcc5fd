# rectrack/app/schemas/visitor.py
from __future__ import annotations

from pydantic import BaseModel


class VisitorSessionResponse(BaseModel):
    sessionId: str


class VisitorStatus(BaseModel):
    sessionId: str
    recommendationCount: int
    limit: int
    limitReached: bool
