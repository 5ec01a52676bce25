"""Request dependencies shared by the routers."""

from __future__ import annotations

from typing import Callable, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel

from fitness_api.config import Settings
from fitness_api.schemas import validate
from fitness_api.store import Repository

F = TypeVar("F", bound=BaseModel)


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def query_model(model: Type[F]) -> Callable[[Request], F]:
    """Dependency validating the query string into `model`.

    Empty values (`?difficulty=`) mean "not given".
    """
    def dependency(request: Request) -> F:
        params = {k: v for k, v in request.query_params.items() if v.strip() != ""}
        return validate(model, params, "Invalid query parameters")

    return dependency
