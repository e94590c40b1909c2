from typing import Any, Optional

from pydantic import BaseModel


class SendOtpRequest(BaseModel):
    email: Optional[str] = None


class ValidateOtpRequest(BaseModel):
    email: Optional[str] = None
    otp: Any = None


class MessageResponse(BaseModel):
    success: bool
    message: str


class ValidateOtpResponse(MessageResponse):
    token: Optional[str] = None
