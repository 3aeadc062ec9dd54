import re
from datetime import date
from typing import Callable, Dict, Literal, Optional, Sequence

from registration.documents import DOCUMENT_SLOTS, DocumentSlot
from registration.state import RegistrationState

EMAIL_RE = re.compile(r"^[\w.-]+@([\w-]+\.)+[\w-]{2,4}$", re.ASCII)
CONTACT_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
RUT_RE = re.compile(r"^\d{7,8}-?[\dkK]$")
PHONE_RE = re.compile(r"^(\+?56)?\d{9}$")

ACCOUNT_KINDS = ("PROPIETARIO", "ARRIENDATARIO")
# common misspelling of the tenant kind
ACCOUNT_KIND_ALIASES = {"ARRENDATARIO": "ARRIENDATARIO"}
MIN_AGE = 18
MIN_PASSWORD_LENGTH = 8

FIRST_NAME_REQUIRED = "El primer nombre es obligatorio"
LAST_NAME_REQUIRED = "El apellido es obligatorio"
RUT_REQUIRED = "El RUT es obligatorio"
RUT_INVALID = "Formato de RUT inválido"
EMAIL_REQUIRED = "El correo es obligatorio"
EMAIL_INVALID = "Formato de correo inválido"
PHONE_REQUIRED = "El teléfono es obligatorio"
PHONE_INVALID = "Formato de teléfono inválido"
BIRTH_DATE_REQUIRED = "La fecha de nacimiento es obligatoria"
BIRTH_DATE_INVALID = "Fecha de nacimiento inválida"
UNDERAGE = "Debes ser mayor de 18 años"
PASSWORD_REQUIRED = "La contraseña es obligatoria"
PASSWORD_TOO_SHORT = "La contraseña debe tener al menos 8 caracteres"
PASSWORD_MISMATCH = "Las contraseñas no coinciden"
ACCOUNT_KIND_REQUIRED = "Debe seleccionar un tipo de cuenta"
DOCUMENT_REQUIRED = "Este documento es obligatorio"


def _blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def validate_required(value: Optional[str], message: str) -> Optional[str]:
    return message if _blank(value) else None


def validate_rut(value: Optional[str]) -> Optional[str]:
    """Format only; the check digit is not verified."""
    if _blank(value):
        return RUT_REQUIRED
    if not RUT_RE.match(value.strip().replace(".", "")):
        return RUT_INVALID
    return None


def validate_email(value: Optional[str]) -> Optional[str]:
    if _blank(value):
        return EMAIL_REQUIRED
    if not EMAIL_RE.match(value.strip()):
        return EMAIL_INVALID
    return None


def validate_phone(value: Optional[str]) -> Optional[str]:
    if _blank(value):
        return PHONE_REQUIRED
    if not PHONE_RE.match(re.sub(r"\s+", "", value)):
        return PHONE_INVALID
    return None


def validate_birth_date(value: Optional[str], today: date) -> Optional[str]:
    """
    Age is today.year - birth.year, without month/day adjustment.
    """
    if _blank(value):
        return BIRTH_DATE_REQUIRED
    try:
        born = date.fromisoformat(value.strip())
    except ValueError:
        return BIRTH_DATE_INVALID
    if today.year - born.year < MIN_AGE:
        return UNDERAGE
    return None


def validate_password(value: Optional[str]) -> Optional[str]:
    if not value:
        return PASSWORD_REQUIRED
    if len(value) < MIN_PASSWORD_LENGTH:
        return PASSWORD_TOO_SHORT
    return None


def validate_confirmation(password: Optional[str], confirm: Optional[str]) -> Optional[str]:
    if (password or "") != (confirm or ""):
        return PASSWORD_MISMATCH
    return None


def normalize_account_kind(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    kind = value.strip().upper()
    kind = ACCOUNT_KIND_ALIASES.get(kind, kind)
    return kind if kind in ACCOUNT_KINDS else None


def validate_account_kind(value: Optional[str]) -> Optional[str]:
    return None if normalize_account_kind(value) else ACCOUNT_KIND_REQUIRED


def validate_login(email: Optional[str], password: Optional[str]) -> Optional[str]:
    if _blank(email) or not password:
        return "Por favor ingrese correo y contraseña"
    return None


def validate_contact_form(
    nombre: Optional[str],
    apellidos: Optional[str],
    email: Optional[str],
    mensaje: Optional[str],
) -> Dict[str, str]:
    errors: Dict[str, str] = {}

    if _blank(nombre):
        errors["nombre"] = "El nombre no puede estar vacío."
    if _blank(apellidos):
        errors["apellidos"] = "Los apellidos no pueden estar vacíos."

    if _blank(email):
        errors["email"] = "El email es obligatorio."
    elif not CONTACT_EMAIL_RE.match(email):
        errors["email"] = "Formato de email no válido."

    if _blank(mensaje):
        errors["mensaje"] = "El mensaje no puede estar vacío."
    elif len(mensaje) < 10:
        errors["mensaje"] = "El mensaje debe tener al menos 10 caracteres."
    elif len(mensaje) > 200:
        errors["mensaje"] = "El mensaje no puede superar los 200 caracteres."

    return errors


class RegistrationValidator:
    def __init__(
        self,
        slots: Sequence[DocumentSlot] = DOCUMENT_SLOTS,
        clock: Callable[[], date] = date.today,
    ):
        self.slots = tuple(slots)
        self.clock = clock

    def personal_data_errors(self, state: RegistrationState) -> Dict[str, str]:
        checks = (
            ("pnombre", validate_required(state.pnombre, FIRST_NAME_REQUIRED)),
            ("papellido", validate_required(state.papellido, LAST_NAME_REQUIRED)),
            ("rut", validate_rut(state.rut)),
            ("email", validate_email(state.email)),
            ("ntelefono", validate_phone(state.ntelefono)),
            ("fnacimiento", validate_birth_date(state.fnacimiento, self.clock())),
            ("password", validate_password(state.password)),
            ("confirm", validate_confirmation(state.password, state.confirm)),
            ("rol", validate_account_kind(state.rol)),
        )
        return {field: message for field, message in checks if message}

    def document_errors(self, state: RegistrationState) -> Dict[str, str]:
        return {
            slot.kind.value: DOCUMENT_REQUIRED
            for slot in self.slots
            if slot.required and not state.documents.get(slot.kind.value)
        }

    def submission_errors(self, state: RegistrationState) -> Dict[str, str]:
        """Draft fields can still be edited on the documents step, so both sets apply."""
        return {**self.personal_data_errors(state), **self.document_errors(state)}

    def active_step_errors(self, state: RegistrationState) -> Dict[str, str]:
        if state.step == "personal_data":
            return self.personal_data_errors(state)
        if state.step == "documents":
            return self.submission_errors(state)
        return {}

    # graph nodes

    def refresh(self, state: RegistrationState) -> dict:
        errors = self.active_step_errors(state)
        can_advance = state.step in ("personal_data", "documents") and not errors
        return {"validation_errors": errors, "can_advance": can_advance, "action": None}

    def check_personal_data(self, state: RegistrationState) -> dict:
        errors = self.personal_data_errors(state)
        return {"validation_errors": errors, "can_advance": not errors, "action": None}

    def check_documents(self, state: RegistrationState) -> dict:
        errors = self.submission_errors(state)
        return {"validation_errors": errors, "can_advance": not errors, "action": None}

    @staticmethod
    def should_proceed(state: RegistrationState) -> Literal["proceed", "end"]:
        return "end" if state.validation_errors else "proceed"
