from fastapi import APIRouter

from archboard.api.routes import canvas, collections, utils, workspaces

api_router = APIRouter()
api_router.include_router(utils.router, tags=["utils"])
api_router.include_router(workspaces.router, prefix="/workspaces", tags=["workspaces"])
api_router.include_router(canvas.router, prefix="/workspaces", tags=["canvas"])
api_router.include_router(collections.router, prefix="/collections", tags=["collections"])
