from fastapi import Request

from .service import GameService


def get_service(request: Request) -> GameService:
    # built once per app (see main.create_app) and shared by all requests
    return request.app.state.service
