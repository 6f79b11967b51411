# backoffice/api/v1/routers.py
from fastapi import APIRouter
from backoffice.api.v1.endpoints import auth

router = APIRouter()

router.include_router(auth.router)
