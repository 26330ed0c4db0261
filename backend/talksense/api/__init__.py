"""API 路由。"""

from fastapi import APIRouter

from talksense.api import speech

router = APIRouter(prefix="/api", tags=["api"])
router.include_router(speech.router, prefix="", tags=["speech"])
