from typing import Tuple

from pydantic import BaseModel, ConfigDict

from services.schemas import DOCUMENT_KIND_IDS, DocumentKind


class DocumentSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: DocumentKind
    label: str
    required: bool

    @property
    def tipo_doc_id(self) -> int:
        return DOCUMENT_KIND_IDS[self.kind]


# submission order follows this tuple
DOCUMENT_SLOTS: Tuple[DocumentSlot, ...] = (
    DocumentSlot(kind=DocumentKind.DNI, label="Cédula de identidad", required=True),
    DocumentSlot(kind=DocumentKind.PASAPORTE, label="Pasaporte", required=False),
    DocumentSlot(kind=DocumentKind.LIQUIDACION_SUELDO, label="Liquidación de sueldo", required=True),
    DocumentSlot(kind=DocumentKind.CERTIFICADO_ANTECEDENTES, label="Certificado de antecedentes", required=True),
    DocumentSlot(kind=DocumentKind.CERTIFICADO_AFP, label="Certificado de AFP", required=False),
    DocumentSlot(kind=DocumentKind.CONTRATO_TRABAJO, label="Contrato de trabajo", required=False),
)


def slot_for(kind: str) -> DocumentSlot:
    for slot in DOCUMENT_SLOTS:
        if slot.kind.value == kind:
            return slot
    raise ValueError(f"Unknown document slot: {kind}")
