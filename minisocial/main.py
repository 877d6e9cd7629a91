import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.staticfiles import StaticFiles

from minisocial import config
from minisocial.db import close_db, init_db
from minisocial.errors import register_exception_handlers
from minisocial.image_store import IMAGE_STORES
from minisocial.routes import auth_routes, post_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.SECRET_KEY == config.DEFAULT_SECRET_KEY:
        logger.warning("SECRET_KEY is not set; using the development default")
    if config.IMAGE_STORE in IMAGE_STORES:
        logger.info("Image store: %s", config.IMAGE_STORE)
    else:
        logger.error("Unknown IMAGE_STORE '%s'; image uploads will fail", config.IMAGE_STORE)
    init_db()
    yield
    close_db()


# =========================================================
# ✅ APP SETUP
# =========================================================
app = FastAPI(
    title="MiniSocial API",
    version="1.0.0",
    description="Minimal social network API: posts, likes and comments on FastAPI and Neo4j, using HTTP Bearer JWT authentication.",
    swagger_ui_parameters={"persistAuthorization": True},  # keep token after refresh
    lifespan=lifespan,
)

register_exception_handlers(app)

# =========================================================
# ✅ ENABLE CORS
# =========================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =========================================================
# ✅ ROUTE REGISTRATION
# =========================================================
app.include_router(auth_routes.router, prefix="/auth", tags=["Auth"])
app.include_router(post_routes.router, prefix="/posts", tags=["Posts"])

# Local image store writes here; served so stored /uploads URLs resolve
if config.IMAGE_STORE == "local":
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR), name="uploads")


@app.get("/")
def root():
    return {"message": "MiniSocial API is running"}


# =========================================================
# ✅ CUSTOM OPENAPI (for HTTP Bearer Auth)
# =========================================================
PUBLIC_OPERATIONS = {("/", "get"), ("/auth/signup", "post"), ("/auth/login", "post")}


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    # Add Bearer auth scheme
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "HTTPBearer": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }

    # Advertise Bearer auth everywhere except signup/login/root
    for path, operations in openapi_schema["paths"].items():
        for method, operation in operations.items():
            if (path, method) in PUBLIC_OPERATIONS:
                continue
            operation.setdefault("security", [{"HTTPBearer": []}])

    app.openapi_schema = openapi_schema
    return app.openapi_schema


# Attach custom OpenAPI schema
app.openapi = custom_openapi
