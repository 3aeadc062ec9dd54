from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Step = Literal["personal_data", "documents", "submitting", "done"]
Action = Literal["next", "back", "submit"]

DRAFT_FIELDS = (
    "pnombre",
    "snombre",
    "papellido",
    "rut",
    "email",
    "ntelefono",
    "fnacimiento",
    "password",
    "confirm",
    "rol",
    "codigo_ref",
)


class RegistrationState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    # applicant draft
    pnombre: Optional[str] = Field(default=None, description="First name")
    snombre: Optional[str] = Field(default=None, description="Middle name")
    papellido: Optional[str] = Field(default=None, description="Last name")
    rut: Optional[str] = Field(default=None, description="Chilean national ID, 12345678-9")
    email: Optional[str] = Field(default=None, description="User email")
    ntelefono: Optional[str] = Field(default=None, description="+56 followed by 9 digits")
    fnacimiento: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    password: Optional[str] = None
    confirm: Optional[str] = None
    rol: Optional[str] = Field(default=None, description="PROPIETARIO or ARRIENDATARIO")
    codigo_ref: Optional[str] = Field(default=None, description="Referral code")

    # slot kind -> attached file name
    documents: Dict[str, str] = Field(default_factory=dict)

    step: Step = "personal_data"
    action: Optional[Action] = None
    validation_errors: Dict[str, str] = Field(default_factory=dict)
    can_advance: bool = False

    attempts: int = 0
    submission: Optional[Dict[str, Any]] = None
    redirect_to: Optional[str] = None

    def draft(self) -> Dict[str, Optional[str]]:
        return {name: getattr(self, name) for name in DRAFT_FIELDS}

    @property
    def submit_error(self) -> Optional[str]:
        if not self.submission:
            return None
        return self.submission.get("error_message")
