from fastapi import APIRouter

from api.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "app_name": settings.app_name}
