from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

FileTree = Dict[str, Union[str, bytes]]

REQUIRED_FIELDS = ("secret", "task", "brief", "evaluation_url")

def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

class Attachment(BaseModel):
    name: str
    url: str  # data: URIs supported

class TaskRequest(BaseModel):
    # Required fields are optional here so a missing one becomes a 400, not a 422.
    model_config = ConfigDict(frozen=True, extra="ignore")

    email: Optional[str] = None
    secret: Optional[str] = None
    task: Optional[str] = None
    round: int = 1
    nonce: str = ""
    brief: Optional[str] = None
    checks: List[str] = Field(default_factory=list)
    evaluation_url: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)

    @field_validator("round", mode="before")
    @classmethod
    def _default_round(cls, v):
        return 1 if v is None else v

    @field_validator("nonce", mode="before")
    @classmethod
    def _default_nonce(cls, v):
        return "" if v is None else v

    @field_validator("checks", "attachments", mode="before")
    @classmethod
    def _default_list(cls, v):
        return [] if v is None else v

    def missing_fields(self) -> List[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

class TaskAccepted(BaseModel):
    status: Literal["accepted"] = "accepted"
    task: str
    round: int
    timestamp: str

class PublishResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    repo_url: str
    commit_sha: str
    pages_url: str

class PublishContext(BaseModel):
    owner: str
    branch: str = "main"
    pages_path: str = "/"
    task: str = ""
    brief: str = ""

    @property
    def commit_message(self) -> str:
        return f"Initial commit - {self.task}" if self.task else "Initial commit"

class NotificationPayload(BaseModel):
    email: Optional[str] = None
    task: str
    round: int
    nonce: str
    repo_url: str = ""
    commit_sha: str = ""
    pages_url: str = ""
    status: Literal["success", "pages_timeout", "error"]
    error: Optional[str] = None
    timestamp: str = Field(default_factory=utc_now)

    def to_json(self) -> dict:
        return self.model_dump(exclude_none=True)

class SecretViolation(BaseModel):
    match: str
    category: str
