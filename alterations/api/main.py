from fastapi import APIRouter

from alterations.api.routes import alterations, board, health

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])

# Workroom scheduling and garment tracking
api_router.include_router(alterations.router)
api_router.include_router(board.router)
