from typing import Literal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class NewsletterRules(BaseModel):
    site_name: str
    confirmation_path: str = "/confirm-subscription"
    token_bytes: int = Field(default=32, ge=16, le=64)
    confirmation_subject: str = "Please Confirm Your Subscription"


class EmailRules(BaseModel):
    provider: Literal["smtp", "dev"] = "smtp"
    sender_name: str | None = None
    sender_address: str | None = None
    smtp_host: str = "localhost"
    smtp_port: int = Field(default=587, gt=0, lt=65536)
    use_tls: bool = True
    timeout_seconds: float = Field(default=30.0, gt=0)
    verify_on_startup: bool = False


class OpsRules(BaseModel):
    data_dir_required: bool
    required_env: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    newsletter: NewsletterRules
    email: EmailRules
    ops: OpsRules
