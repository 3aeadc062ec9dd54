import logging
from typing import Optional

from registration.validator import validate_login
from services.errors import ServiceError
from services.schemas import LoginResponse, User, role_from_id
from services.users import UserClient

from .store import SessionStore

logger = logging.getLogger(__name__)


class LoginValidationError(ValueError):
    pass


class AuthService:
    def __init__(self, users: UserClient, session: SessionStore):
        self.users = users
        self.session = session

    async def login(self, email: str, password: str) -> LoginResponse:
        """
        Starts a session when the user service accepts the credentials.

        Raises LoginValidationError before any call when a field is empty and
        lets ServiceError through unchanged.
        """
        problem = validate_login(email, password)
        if problem:
            raise LoginValidationError(problem)

        response = await self.users.login(email, password)
        if response.success and response.usuario is not None:
            user = response.usuario
            self.session.start(user.id, user.email, role_from_id(user.rol_id))
        else:
            logger.info("Login rejected for %s", email)
        return response

    def logout(self) -> None:
        self.session.clear()

    async def current_user(self) -> Optional[User]:
        user_id = self.session.read().user_id
        if user_id is None:
            return None
        try:
            return await self.users.get(user_id, include_details=True)
        except ServiceError as exc:
            logger.error("Could not load current user %s: %s", user_id, exc.message)
            return None
