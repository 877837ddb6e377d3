from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from bento_api import __version__
from bento_api.core.config import get_settings
from bento_api.routers.auth import router as auth_router
from bento_api.routers.health import router as health_router
from bento_api.routers.me import router as me_router
from bento_api.routers.menus import router as menus_router
from bento_api.routers.order_items import router as order_items_router
from bento_api.routers.orders import router as orders_router
from bento_api.routers.rank import router as rank_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Group meal ordering for meetings - browse restaurant menus, join the daily order, and manage restaurants and orders.",
    version=__version__,
    debug=settings.DEBUG,
)


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected server errors with structured response."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request.headers.get("X-Request-ID"),
        }
    )

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(auth_router, prefix="/api")
app.include_router(me_router, prefix="/api")
app.include_router(menus_router, prefix="/api")
app.include_router(orders_router, prefix="/api")
app.include_router(order_items_router, prefix="/api")
app.include_router(rank_router, prefix="/api")


@app.get("/")
def read_root():
    return {
        "message": "Welcome to Bento Order API",
        "docs": "/docs",
        "health": "/health"
    }
