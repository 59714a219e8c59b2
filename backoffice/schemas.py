from typing import Literal, Optional, Annotated
from uuid import UUID
from pydantic import BaseModel, EmailStr, StringConstraints

from backoffice.services.signup_service import PasswordConfirmationPayload


class SignupSuccessResponse(BaseModel):
    message: str
    email: EmailStr
    user_id: UUID
    restaurant_id: UUID


class LoginPayload(BaseModel):
    email: EmailStr
    password: Annotated[str, StringConstraints(min_length=6, max_length=72)]


class LoginSuccessResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int
    expires_at: int


class ForgotPasswordPayload(BaseModel):
    email: EmailStr
    redirect_to: Optional[str] = None


class ResetPasswordPayload(PasswordConfirmationPayload):
    pass


class MessageResponse(BaseModel):
    message: str
