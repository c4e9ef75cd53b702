"""
FastAPI Todo Backend package.

The application is built by `todo_api.main.create_app`; `todo_api.main:app`
is the module-level instance served by uvicorn.
"""
