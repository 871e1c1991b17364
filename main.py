"""ASGI entrypoint: ``uvicorn main:app``."""

import uvicorn

from app import create_app
from core import settings

app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.app_env == "local")
