from fastapi import APIRouter, Depends, status

from backoffice.api.v1.deps import get_auth_service, get_current_user
from backoffice.schemas.auth_schema import AuthResponse, LoginIn, RegisterIn
from backoffice.schemas.user_schema import ProfileOut
from backoffice.services.auth_services import AuthService

router = APIRouter(tags=["auth"], prefix="/auth")


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_in: RegisterIn, auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.register(user_in)


@router.post("/login", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def login(body: LoginIn, auth_svc: AuthService = Depends(get_auth_service)):
    return await auth_svc.login(body.identifier, body.password)


@router.get("/profile", response_model=ProfileOut)
async def read_profile(
        current_user: dict = Depends(get_current_user),
        auth_svc: AuthService = Depends(get_auth_service),
):
    return auth_svc.get_profile(current_user)
