import logging

from fastapi import FastAPI

from routes import textures
from texture_export import config

logging.basicConfig(level=config.LOG_LEVEL)

app = FastAPI(title="SWF Texture Exporter")

app.include_router(textures.router, prefix="/api/textures", tags=["textures"])
