import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .errors import GENERIC_FAILURE, ErrorKind, ServiceError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def flag(value: bool) -> str:
    return "true" if value else "false"


class ServiceClient:
    """
    JSON-over-HTTP access to one Rentify microservice.

    Every failure leaves as a ServiceError. There is no retry or backoff.
    """

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=HEADERS,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self._http.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            logger.error("%s %s timed out: %s", self.service_name, operation, exc)
            raise ServiceError(ErrorKind.TIMEOUT, str(exc) or "timeout", service=self.service_name) from exc
        except httpx.TransportError as exc:
            logger.error("%s %s could not connect: %s", self.service_name, operation, exc)
            raise ServiceError(ErrorKind.NETWORK, str(exc) or "connection failed", service=self.service_name) from exc

        if response.is_error:
            message = self._error_message(response)
            logger.error("%s %s failed with %s: %s", self.service_name, operation, response.status_code, message)
            raise ServiceError(ErrorKind.REJECTED, message, status=response.status_code, service=self.service_name)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.error("%s %s returned a non-JSON body", self.service_name, operation)
            raise ServiceError(
                ErrorKind.INVALID_RESPONSE,
                "Respuesta no es JSON",
                status=response.status_code,
                service=self.service_name,
            ) from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"Error {response.status_code}: {GENERIC_FAILURE}"

    def _parse(self, model: Type[M], data: Any, operation: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.error("%s %s returned an unexpected payload: %s", self.service_name, operation, exc)
            raise ServiceError(ErrorKind.INVALID_RESPONSE, "Respuesta inesperada", service=self.service_name) from exc

    def _parse_list(self, model: Type[M], data: Any, operation: str) -> List[M]:
        if not isinstance(data, list):
            raise ServiceError(ErrorKind.INVALID_RESPONSE, "Se esperaba una lista", service=self.service_name)
        return [self._parse(model, item, operation) for item in data]

    async def _get_model(self, model: Type[M], path: str, operation: str, **kwargs: Any) -> M:
        return self._parse(model, await self._request("GET", path, operation, **kwargs), operation)

    async def _get_list(self, model: Type[M], path: str, operation: str, **kwargs: Any) -> List[M]:
        return self._parse_list(model, await self._request("GET", path, operation, **kwargs), operation)

    async def _check(self, path: str, operation: str) -> bool:
        """
        Boolean probe endpoints: any failure reads as False.
        """
        try:
            return bool(await self._request("GET", path, operation))
        except ServiceError as exc:
            logger.warning("%s %s treated as false: %s", self.service_name, operation, exc.message)
            return False
