"""
asgi.py -- Application assembly and process entry point for AuthGate.

Run with:  uvicorn asgi:app --reload
           python asgi.py            (binds HOST:PORT from settings)
"""

import uvicorn

from api.main import app
from core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
