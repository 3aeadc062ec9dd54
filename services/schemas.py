"""
Wire DTOs for the Rentify microservices.

Python attributes are snake_case; the services speak camelCase, handled by the
alias generator. Nested objects only show up when `includeDetails=true`.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Role(str, Enum):
    ADMIN = "ADMIN"
    PROPIETARIO = "PROPIETARIO"
    ARRIENDATARIO = "ARRIENDATARIO"


ROLE_IDS = {Role.ADMIN: 1, Role.PROPIETARIO: 2, Role.ARRIENDATARIO: 3}


def role_from_id(rol_id: Optional[int]) -> Role:
    for role, rid in ROLE_IDS.items():
        if rid == rol_id:
            return role
    return Role.ARRIENDATARIO


class UserStatus(int, Enum):
    ACTIVO = 1


class DocumentStatus(str, Enum):
    PENDIENTE = "PENDIENTE"
    ACEPTADO = "ACEPTADO"
    RECHAZADO = "RECHAZADO"
    EN_REVISION = "EN_REVISION"

    @property
    def id(self) -> int:
        return _DOCUMENT_STATUS_IDS[self]


_DOCUMENT_STATUS_IDS = {
    DocumentStatus.PENDIENTE: 1,
    DocumentStatus.ACEPTADO: 2,
    DocumentStatus.RECHAZADO: 3,
    DocumentStatus.EN_REVISION: 4,
}


class DocumentKind(str, Enum):
    DNI = "DNI"
    PASAPORTE = "PASAPORTE"
    LIQUIDACION_SUELDO = "LIQUIDACION_SUELDO"
    CERTIFICADO_ANTECEDENTES = "CERTIFICADO_ANTECEDENTES"
    CERTIFICADO_AFP = "CERTIFICADO_AFP"
    CONTRATO_TRABAJO = "CONTRATO_TRABAJO"


DOCUMENT_KIND_IDS = {
    DocumentKind.DNI: 1,
    DocumentKind.PASAPORTE: 2,
    DocumentKind.LIQUIDACION_SUELDO: 3,
    DocumentKind.CERTIFICADO_ANTECEDENTES: 4,
    DocumentKind.CERTIFICADO_AFP: 5,
    DocumentKind.CONTRATO_TRABAJO: 6,
}


class ApplicationStatus(str, Enum):
    PENDIENTE = "PENDIENTE"
    ACEPTADA = "ACEPTADA"
    RECHAZADA = "RECHAZADA"


class ContactStatus(str, Enum):
    PENDIENTE = "PENDIENTE"
    EN_PROCESO = "EN_PROCESO"
    RESUELTO = "RESUELTO"


class Currency(str, Enum):
    CLP = "CLP"
    USD = "USD"
    EUR = "EUR"


# ---------------------------------------------------------------------------
# User service
# ---------------------------------------------------------------------------

class Lookup(CamelModel):
    id: int
    nombre: str


class User(CamelModel):
    id: int
    pnombre: str
    snombre: Optional[str] = None
    papellido: str
    email: str
    rut: Optional[str] = None
    ntelefono: Optional[str] = None
    fnacimiento: Optional[str] = None
    puntos: Optional[int] = None
    duoc_vip: Optional[bool] = None
    codigo_ref: Optional[str] = None
    estado_id: Optional[int] = None
    rol_id: Optional[int] = None
    fcreacion: Optional[str] = None
    factualizacion: Optional[str] = None
    rol: Optional[Lookup] = None
    estado: Optional[Lookup] = None


class LoginRequest(CamelModel):
    email: str
    clave: str


class LoginResponse(CamelModel):
    success: bool
    mensaje: Optional[str] = None
    usuario: Optional[User] = None


class CreateUserRequest(CamelModel):
    pnombre: str
    snombre: Optional[str] = None
    papellido: str
    fnacimiento: str
    email: str
    rut: str
    ntelefono: str
    # sent in clear, the user service hashes it
    clave: str
    estado_id: int = UserStatus.ACTIVO.value
    rol_id: int
    duoc_vip: bool = False
    codigo_ref: Optional[str] = None


# ---------------------------------------------------------------------------
# Property service
# ---------------------------------------------------------------------------

class Region(CamelModel):
    id: int
    nombre: str


class Comuna(CamelModel):
    id: int
    nombre: str
    region_id: Optional[int] = None
    region: Optional[Region] = None


class Photo(CamelModel):
    id: int
    url: str
    propiedad_id: Optional[int] = None


class Property(CamelModel):
    id: int
    codigo: str
    titulo: str
    descripcion: Optional[str] = None
    direccion: str
    precio_mensual: float
    divisa: Currency = Currency.CLP
    m2: float
    n_habit: int
    n_banos: int
    pet_friendly: bool = False
    tipo_id: int
    comuna_id: int
    fcreacion: Optional[str] = None
    estado_propiedad: Optional[str] = None
    tipo: Optional[Lookup] = None
    comuna: Optional[Comuna] = None
    fotos: Optional[List[Photo]] = None
    categorias: Optional[List[Lookup]] = None


class CreatePropertyRequest(CamelModel):
    codigo: str
    titulo: str
    descripcion: Optional[str] = None
    direccion: str
    precio_mensual: float
    divisa: Currency = Currency.CLP
    m2: float
    n_habit: int
    n_banos: int
    pet_friendly: bool = False
    tipo_id: int
    comuna_id: int


class PropertyFilters(CamelModel):
    tipo_id: Optional[int] = None
    comuna_id: Optional[int] = None
    precio_min: Optional[float] = None
    precio_max: Optional[float] = None
    n_habit_min: Optional[int] = None
    pet_friendly: Optional[bool] = None
    include_details: Optional[bool] = None

    def to_params(self) -> dict:
        params = {}
        for key, value in self.to_wire().items():
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
            elif value:
                params[key] = value
        return params


# ---------------------------------------------------------------------------
# Document service
# ---------------------------------------------------------------------------

class Document(CamelModel):
    id: int
    nombre: str
    fecha_subido: Optional[str] = None
    usuario_id: int
    estado_id: int
    tipo_doc_id: int
    estado_nombre: Optional[str] = None
    tipo_doc_nombre: Optional[str] = None
    usuario: Optional[User] = None


class CreateDocumentRequest(CamelModel):
    nombre: str
    usuario_id: int
    estado_id: int = Field(default_factory=lambda: DocumentStatus.PENDIENTE.id)
    tipo_doc_id: int


# ---------------------------------------------------------------------------
# Application service
# ---------------------------------------------------------------------------

class RentalApplication(CamelModel):
    id: int
    usuario_id: int
    propiedad_id: int
    estado: ApplicationStatus = ApplicationStatus.PENDIENTE
    fecha_solicitud: Optional[str] = None
    usuario: Optional[User] = None
    propiedad: Optional[Property] = None


class CreateApplicationRequest(CamelModel):
    usuario_id: int
    propiedad_id: int


class RentalRecord(CamelModel):
    id: int
    solicitud_id: int
    fecha_inicio: str
    fecha_fin: Optional[str] = None
    monto_mensual: float
    activo: bool = True
    solicitud: Optional[RentalApplication] = None


class CreateRentalRecordRequest(CamelModel):
    solicitud_id: int
    fecha_inicio: str
    fecha_fin: Optional[str] = None
    monto_mensual: float


# ---------------------------------------------------------------------------
# Contact service
# ---------------------------------------------------------------------------

class ContactMessage(CamelModel):
    id: Optional[int] = None
    nombre: str
    email: str
    asunto: str
    mensaje: str
    numero_telefono: Optional[str] = None
    usuario_id: Optional[int] = None
    estado: Optional[ContactStatus] = None
    fecha_creacion: Optional[str] = None
    fecha_actualizacion: Optional[str] = None
    respuesta: Optional[str] = None
    respondido_por: Optional[int] = None
    usuario: Optional[User] = None


class ContactReply(CamelModel):
    respuesta: str
    respondido_por: int
    nuevo_estado: Optional[ContactStatus] = None


class ContactStatistics(CamelModel):
    total: int = 0
    pendientes: int = 0
    en_proceso: int = 0
    resueltos: int = 0
