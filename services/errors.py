from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    REJECTED = "rejected"
    INVALID_RESPONSE = "invalid_response"


class ServiceError(Exception):
    """
    Raised by every service client. `kind` says what went wrong, `message` is
    the server's own text for REJECTED errors when it sent one.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status: Optional[int] = None,
        service: str = "",
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.service = service

    def __repr__(self) -> str:
        return f"ServiceError(kind={self.kind.value!r}, status={self.status!r}, message={self.message!r})"


GENERIC_FAILURE = "Error en la petición"


def user_message(error: ServiceError) -> str:
    if error.kind is ErrorKind.REJECTED:
        return error.message
    if error.kind is ErrorKind.TIMEOUT:
        return "El servidor tardó demasiado en responder. Intenta nuevamente."
    if error.kind is ErrorKind.NETWORK:
        service = error.service or "el servicio"
        return f"No se pudo conectar con el servidor. Verifica que {service} esté disponible."
    return "Respuesta inesperada del servidor."
