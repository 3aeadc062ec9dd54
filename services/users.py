from typing import List

from .client import ServiceClient
from .schemas import CreateUserRequest, LoginRequest, LoginResponse, Lookup, User


class UserClient(ServiceClient):
    service_name = "User Service"

    async def login(self, email: str, clave: str) -> LoginResponse:
        data = await self._request(
            "POST", "/usuarios/login", "login", json=LoginRequest(email=email, clave=clave).to_wire()
        )
        return self._parse(LoginResponse, data, "login")

    async def create(self, request: CreateUserRequest) -> User:
        data = await self._request("POST", "/usuarios", "create_user", json=request.to_wire())
        return self._parse(User, data, "create_user")

    async def get(self, user_id: int, include_details: bool = False) -> User:
        params = {"includeDetails": "true"} if include_details else None
        return await self._get_model(User, f"/usuarios/{user_id}", f"get_user({user_id})", params=params)

    async def exists(self, user_id: int) -> bool:
        return await self._check(f"/usuarios/{user_id}/existe", f"user_exists({user_id})")

    async def list_roles(self) -> List[Lookup]:
        return await self._get_list(Lookup, "/roles", "list_roles")

    async def get_role(self, role_id: int) -> Lookup:
        return await self._get_model(Lookup, f"/roles/{role_id}", f"get_role({role_id})")

    async def list_statuses(self) -> List[Lookup]:
        return await self._get_list(Lookup, "/estados", "list_user_statuses")

    async def get_status(self, status_id: int) -> Lookup:
        return await self._get_model(Lookup, f"/estados/{status_id}", f"get_user_status({status_id})")
