"""FastAPI app factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from seasonscape import __version__
from seasonscape.config import settings

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.seasonscape_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Seasonscape",
        description="Seasonal garden visualization — bloom calendar, sprite composites, AI enhancement",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from seasonscape.api.router import api_router

    app.include_router(api_router)

    # Generated images are served from the same flat directory they are written to
    app.mount(
        settings.output_url_prefix,
        StaticFiles(directory=settings.output_dir, check_dir=False),
        name="generated",
    )

    return app


app = create_app()
