# rectrack/app/schemas/auth.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from rectrack.app.domain.models import TransferReport


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6, max_length=128)
    name: Optional[str] = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class AuthUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


class TransferSummary(BaseModel):
    attempted: int
    succeeded: int
    failed: int
    partial: bool
    categoriesCopied: int = 0

    @classmethod
    def from_report(cls, report: TransferReport) -> "TransferSummary":
        return cls(
            attempted=report.attempted,
            succeeded=report.succeeded,
            failed=report.failed,
            partial=report.partial,
            categoriesCopied=report.categories_copied,
        )


class SessionResponse(BaseModel):
    user: AuthUserResponse
    accessToken: Optional[str] = None
    refreshToken: Optional[str] = None
    # None when sign-up still needs e-mail confirmation
    transfer: Optional[TransferSummary] = None
