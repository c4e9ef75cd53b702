"""
FastAPI dependencies resolving the store handles attached to the app.

`create_app` places the repository and the activity log writer/reader on
`app.state`; handlers receive them through these callables.
"""
from __future__ import annotations

from fastapi import Request

from .activity_log import ActivityLogReader, ActivityLogWriter
from .repositories import Repository


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def get_activity_writer(request: Request) -> ActivityLogWriter:
    return request.app.state.activity_writer


def get_activity_reader(request: Request) -> ActivityLogReader:
    return request.app.state.activity_reader
