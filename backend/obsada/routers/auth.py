import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from obsada.models.user import UserLogin, UserResponse, user_to_response
from obsada.services import user_service
from obsada.services.audit_service import log_audit
from obsada.services.auth_service import (
    create_access_token,
    get_current_user,
    set_auth_cookie,
    verify_password,
)

logger = logging.getLogger("obsada.auth")
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(body: UserLogin, response: Response):
    """Login with email and password. Returns a bearer token and sets the cookie."""
    user = await user_service.get_by_email(body.email)
    if not user or not verify_password(body.password, user["hashed_password"]):
        if user:
            await log_audit(actor_id=str(user["_id"]), target_id=str(user["_id"]), action="LOGIN_FAILED")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    user_id = str(user["_id"])
    access = create_access_token(user_id, user["role"])
    set_auth_cookie(response, access)

    await log_audit(actor_id=user_id, target_id=user_id, action="LOGIN_SUCCESS")
    logger.info("User logged in: %s", user_id)
    return {"access_token": access, "token_type": "bearer"}


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie("access_token", path="/")
    return {"message": "Logged out."}


@router.get("/me", response_model=UserResponse)
async def me(user=Depends(get_current_user)):
    return user_to_response(user)
