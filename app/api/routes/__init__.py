from app.api.routes.incidents import router as incidents_router

__all__ = [
    "incidents_router",
]
