# backend/main.py
"""
ASGI entry point:

    uvicorn backend.main:app --host 0.0.0.0 --port 8000
"""
from backend.app.main import create_app

app = create_app()
