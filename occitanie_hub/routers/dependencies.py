from fastapi import Request

from occitanie_hub.services.controller import EventController


def get_controller(request: Request) -> EventController:
    """The controller is built once at startup and kept on the application state."""
    return request.app.state.controller
