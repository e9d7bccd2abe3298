from __future__ import annotations  # FastAPI server exposing the interview preparation API

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import install_error_handlers
from api.routes import router
from config.settings import settings
from llm_gateway import bind_defaults
from observability import setup_logging
from storage.migrate import migrate


def create_app() -> FastAPI:
    migrate(settings.DB_PATH)
    bind_defaults()
    app = FastAPI(title="Interview Prep API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    install_error_handlers(app)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8000)
