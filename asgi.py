"""
asgi.py -- Application assembly for the OAK portal.

This is the ONLY module that imports from both api/ and web/, and the only
one that reads configuration from the environment. It builds Settings once
and hands it to create_app().

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app
from core.config import get_settings
from web.routes import router as web_router

app = create_app(get_settings())

# Mounted here, not in api/main.py, so api/ and web/ stay independent.
app.include_router(web_router, tags=["Web UI"])
