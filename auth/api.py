"""HTTP routes for authentication."""

from dataclasses import asdict

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from auth.exceptions import InvalidCredentialsError
from auth.service import AuthService
from auth.types import LoginRequest
from api.base import success_response, error_response, ErrorCodes


def create_auth_router(auth_service: AuthService, secure_cookies: bool = True) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    @router.post("/login")
    async def login(body: LoginRequest, response: Response):
        """Password sign-in. Sets the session_token cookie on success."""
        try:
            result = auth_service.login(body.email, body.password)
        except InvalidCredentialsError as e:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.INVALID_CREDENTIALS,
                    str(e),
                ).model_dump(mode="json"),
            )

        response.set_cookie(
            key="session_token",
            value=result.session.token,
            httponly=True,
            secure=secure_cookies,
            samesite="lax",
            max_age=int((result.session.expires_at - result.session.created_at).total_seconds()),
        )

        return success_response({
            "user": {
                "id": str(result.user_id),
                "email": result.email,
            }
        })

    @router.post("/logout")
    async def logout(request: Request, response: Response):
        """Logout - revoke session and clear cookie."""
        session_token = request.cookies.get("session_token")
        if session_token:
            auth_service.logout(session_token)

        response.delete_cookie(key="session_token")
        return success_response({"message": "Déconnecté"})

    @router.get("/me")
    async def get_current_user(request: Request):
        """Current account, its role and the actions it may take."""
        if not hasattr(request.state, "user_id"):
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )

        session = request.state.session
        return success_response({
            "user_id": str(request.state.user_id),
            "email": session.email,
            "role": request.state.role.value,
            "capabilities": asdict(request.state.capabilities),
        })

    return router
