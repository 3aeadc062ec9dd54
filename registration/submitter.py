import inspect
import logging
from typing import Any, Callable, Iterable, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from registration.documents import DOCUMENT_SLOTS, DocumentSlot
from registration.state import RegistrationState
from registration.validator import normalize_account_kind
from services.documents import DocumentClient
from services.errors import GENERIC_FAILURE, ServiceError
from services.schemas import ROLE_IDS, CreateDocumentRequest, CreateUserRequest, Role
from services.users import UserClient
from session.store import SessionStore

logger = logging.getLogger(__name__)

# error kinds for failures raised outside the service clients
INVALID_DRAFT = "invalid_draft"
UNEXPECTED_ERROR = "unexpected"


class SubmissionResult(BaseModel):
    """
    What one submission attempt got done. An account can exist while some
    documents were never created: `partial` flags that case.
    """

    user_id: Optional[int] = None
    committed: List[str] = Field(default_factory=list)
    failed_step: Optional[Literal["account", "document"]] = None
    failed_slot: Optional[str] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.user_id is not None and self.failed_step is None

    @property
    def partial(self) -> bool:
        return self.user_id is not None and self.failed_step is not None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _required(value: Optional[str], field: str) -> str:
    cleaned = _clean(value)
    if cleaned is None:
        raise ValueError(f"{field} is missing")
    return cleaned


def is_institutional_email(email: str, domains: Iterable[str]) -> bool:
    address = email.strip().lower()
    return any(address.endswith("@" + domain.lower()) for domain in domains)


class RegistrationSubmitter:
    """
    Creates the account, then one document per attached slot, in slot order
    and one call at a time. Nothing is retried or rolled back.
    """

    def __init__(
        self,
        users: UserClient,
        documents: DocumentClient,
        session: SessionStore,
        institutional_domains: Iterable[str] = ("duocuc.cl", "profesor.duoc.cl"),
        slots: Sequence[DocumentSlot] = DOCUMENT_SLOTS,
        on_success: Optional[Callable[[SubmissionResult], Any]] = None,
    ):
        self.users = users
        self.documents = documents
        self.session = session
        self.institutional_domains = tuple(institutional_domains)
        self.slots = tuple(slots)
        self.on_success = on_success

    def build_user_request(self, state: RegistrationState) -> CreateUserRequest:
        email = _required(state.email, "email")
        return CreateUserRequest(
            pnombre=_required(state.pnombre, "pnombre"),
            snombre=_clean(state.snombre),
            papellido=_required(state.papellido, "papellido"),
            fnacimiento=_required(state.fnacimiento, "fnacimiento"),
            email=email,
            rut=_required(state.rut, "rut"),
            ntelefono=_required(state.ntelefono, "ntelefono"),
            clave=state.password or "",
            rol_id=ROLE_IDS[Role(normalize_account_kind(state.rol))],
            duoc_vip=is_institutional_email(email, self.institutional_domains),
            codigo_ref=_clean(state.codigo_ref),
        )

    async def submit(self, state: RegistrationState) -> SubmissionResult:
        result = SubmissionResult()

        try:
            role = Role(normalize_account_kind(state.rol))
            request = self.build_user_request(state)
        except ValueError as exc:
            logger.warning("Draft cannot be sent to the user service: %s", exc)
            return result.model_copy(
                update={"failed_step": "account", "error_kind": INVALID_DRAFT, "error_message": GENERIC_FAILURE}
            )

        try:
            user = await self.users.create(request)
        except ServiceError as exc:
            logger.warning("Account creation failed: %s", exc.message)
            return result.model_copy(
                update={"failed_step": "account", "error_kind": exc.kind.value, "error_message": exc.message}
            )

        logger.info("Created user %s as %s", user.id, role.value)
        result.user_id = user.id
        self.session.write(user_id=user.id, email=user.email, role=role)

        for slot in self.slots:
            filename = state.documents.get(slot.kind.value)
            if not filename:
                continue
            document = CreateDocumentRequest(nombre=filename, usuario_id=user.id, tipo_doc_id=slot.tipo_doc_id)
            try:
                await self.documents.create(document)
            except ServiceError as exc:
                logger.warning(
                    "Document %s failed for user %s after %d committed: %s",
                    slot.kind.value,
                    user.id,
                    len(result.committed),
                    exc.message,
                )
                return result.model_copy(
                    update={
                        "failed_step": "document",
                        "failed_slot": slot.kind.value,
                        "error_kind": exc.kind.value,
                        "error_message": exc.message,
                    }
                )
            result.committed.append(slot.kind.value)

        self.session.start(user.id, user.email, role)
        if self.on_success is not None:
            # account and documents are committed whatever the callback does
            try:
                outcome = self.on_success(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("on_success callback failed for user %s", user.id)
        return result
