from fastapi import APIRouter

from repolens.api.v1 import repo, user

api_router = APIRouter(prefix="/api")

api_router.include_router(repo.router)
api_router.include_router(user.router)
