from fastapi import APIRouter

from ogpinfo.api.ogp.routes import router as ogp_router

router = APIRouter()
router.include_router(ogp_router)
