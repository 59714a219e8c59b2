from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from backoffice.api.dependencies import get_access_token
from backoffice.schemas import (
    ForgotPasswordPayload,
    LoginPayload,
    LoginSuccessResponse,
    MessageResponse,
    ResetPasswordPayload,
    SignupSuccessResponse,
)
from backoffice.services.auth_service import (
    AuthenticationError,
    InvalidCredentials,
    login_with_password,
    request_password_reset,
    update_password,
)
from backoffice.services.signup_service import (
    SignupError,
    SignupPayload,
    SignupValidationError,
    execute_signup,
)
from backoffice.security.guards import auth_guard

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/signup", response_model=SignupSuccessResponse, dependencies=[Depends(auth_guard("signup"))])
async def signup_endpoint(payload: SignupPayload) -> SignupSuccessResponse:
    try:
        result = await execute_signup(payload)
    except SignupValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except SignupError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    try:
        user_uuid = UUID(result.user_id)
        restaurant_uuid = UUID(result.restaurant_id)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=500, detail="Identificadores do Supabase inválidos.") from exc

    return SignupSuccessResponse(
        message="Conta criada com sucesso! Você já pode acessar o painel.",
        email=payload.email,
        user_id=user_uuid,
        restaurant_id=restaurant_uuid,
    )


@router.post("/login", response_model=LoginSuccessResponse, dependencies=[Depends(auth_guard("login"))])
async def login_endpoint(payload: LoginPayload) -> LoginSuccessResponse:
    try:
        session = await login_with_password(payload.email, payload.password)
    except InvalidCredentials as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except AuthenticationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return LoginSuccessResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        expires_at=session.expires_at,
    )


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(auth_guard("password_reset"))],
)
async def forgot_password_endpoint(payload: ForgotPasswordPayload) -> MessageResponse:
    try:
        await request_password_reset(payload.email, payload.redirect_to)
    except AuthenticationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    # Same answer whether or not the address exists.
    return MessageResponse(message="Se o email estiver cadastrado, você receberá um link para redefinir a senha.")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(auth_guard("password_update"))],
)
async def reset_password_endpoint(
    payload: ResetPasswordPayload,
    access_token: str = Depends(get_access_token),
) -> MessageResponse:
    try:
        await update_password(access_token, payload.password)
    except InvalidCredentials as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except AuthenticationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return MessageResponse(message="Senha atualizada com sucesso.")
