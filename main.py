import sys
import os
import logging
import importlib
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from config.database import engine, Base, UPLOAD_DIR, UPLOAD_TMP_DIR
from config.settings import settings
import api.issues.issues_model  # noqa: F401  (register tables)

logger = logging.getLogger("app")


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


configure_logging()
Base.metadata.create_all(bind=engine)

@asynccontextmanager
async def lifespan(app: FastAPI):
    UPLOAD_TMP_DIR.mkdir(parents=True, exist_ok=True)
    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    yield

app = FastAPI(lifespan=lifespan)
# durable photo storage served back to clients
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount(settings.UPLOAD_URL, StaticFiles(directory=UPLOAD_DIR), name="uploads")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)

#load all routes
def load_routes(directory: Path):
    routers = []
    root = directory.parent
    for item in sorted(directory.rglob("*_routes.py")):
        module_name = ".".join(item.relative_to(root).with_suffix("").parts)
        module = importlib.import_module(module_name)
        if hasattr(module, "router"):
            routers.append(module.router)
    return routers

for router in load_routes(Path(__file__).parent / "api"):
    app.include_router(router, prefix="/api")

@app.get("/health")
def health_check():
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", settings.PORT or 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=settings.DEBUG)
