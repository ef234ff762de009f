"""User administration API for officials, league admins and the owner."""

from fastapi import APIRouter, Depends, status

from obsada.models.user import Role, UserCreate, UserResponse, UserUpdate, user_to_response
from obsada.services import user_service
from obsada.services.auth_service import get_admin_user, get_owner_user

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def get_all(_owner=Depends(get_owner_user)):
    return [user_to_response(u) for u in await user_service.get_all()]


@router.get("/referees", response_model=list[UserResponse])
async def get_all_referees(_admin=Depends(get_admin_user)):
    return [user_to_response(u) for u in await user_service.get_all_by_role(Role.referee)]


@router.get("/observers", response_model=list[UserResponse])
async def get_all_observers(_admin=Depends(get_admin_user)):
    return [user_to_response(u) for u in await user_service.get_all_by_role(Role.observer)]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create(body: UserCreate, _owner=Depends(get_owner_user)):
    return user_to_response(await user_service.create(body))


@router.get("/{user_id}", response_model=UserResponse)
async def get_one(user_id: str, _admin=Depends(get_admin_user)):
    return user_to_response(await user_service.require_user(user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update(user_id: str, body: UserUpdate, _owner=Depends(get_owner_user)):
    return user_to_response(await user_service.update(user_id, body))


@router.delete("/{user_id}", response_model=UserResponse)
async def remove(user_id: str, _owner=Depends(get_owner_user)):
    return user_to_response(await user_service.remove(user_id))
