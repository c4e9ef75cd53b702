"""
Run the API with uvicorn.

Usage:
    python -m todo_api
    todo-backend
"""
from __future__ import annotations

import uvicorn

from .settings import get_settings


# PUBLIC_INTERFACE
def main() -> None:
    """Serve todo_api.main:app on the HOST/PORT from settings."""
    settings = get_settings()
    uvicorn.run("todo_api.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
