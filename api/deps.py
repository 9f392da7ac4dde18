# api/deps.py
from fastapi import Depends, Request

from services.container import Services
from services.errors import Unauthorized


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_user_id(request: Request, services: Services = Depends(get_services)) -> str:
    """
    The authentication gateway in front of the API resolves the session and
    forwards the user id in a trusted header. No header, no access.
    """
    user_id = (request.headers.get(services.settings.auth_user_header) or "").strip()
    if not user_id:
        raise Unauthorized()
    return user_id
