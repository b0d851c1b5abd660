from fastapi import APIRouter

from migration_gateway.api.v1.endpoints import actions, health

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(actions.router)
