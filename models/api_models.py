"""
Pydantic data models for API requests.
"""
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator, model_validator

from models.gateway_models import SecretPlacement
from utils.path_address import PathAddress


class Message(BaseModel):
    """Chat message model."""
    role: str  # "user", "assistant" or "system"
    content: str


PATH_FIELDS = (
    "secret_body_path",
    "message_list_path",
    "role_field_path",
    "text_field_path",
    "response_text_path",
    "response_thinking_path",
)


# Fields an update may clear with an explicit null
NULLABLE_FIELDS = frozenset({
    "custom_header_name",
    "secret_body_path",
    "response_template_example",
    "message_list_path",
    "response_thinking_path",
})

RequestTemplate = Union[Dict[str, Any], List[Any]]


class AIConfigBase(BaseModel):
    """Fields shared by create and update requests."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    endpoint_url: Optional[str] = None
    secret: Optional[str] = Field(None, min_length=1, description="Plain secret or 'rsa:' encrypted value")
    secret_placement: Optional[SecretPlacement] = None
    custom_header_name: Optional[str] = None
    secret_body_path: Optional[str] = None
    model_name: Optional[str] = None
    request_template: Optional[RequestTemplate] = None
    response_template_example: Optional[Dict[str, Any]] = None
    message_list_path: Optional[str] = None
    role_field_path: Optional[str] = None
    text_field_path: Optional[str] = None
    response_text_path: Optional[str] = None
    response_thinking_path: Optional[str] = None
    user_role_value: Optional[str] = None
    assistant_role_value: Optional[str] = None
    system_role_value: Optional[str] = None
    extra_headers: Optional[Dict[str, str]] = None

    @field_validator("endpoint_url")
    @classmethod
    def check_endpoint_url(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.startswith(("http://", "https://")):
            raise ValueError("endpoint_url must be an absolute http(s) URL")
        return value

    @field_validator(*PATH_FIELDS)
    @classmethod
    def check_path(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not PathAddress.is_valid(value):
            raise ValueError(f"'{value}' is not a valid path expression")
        return value

    def provided_fields(self) -> dict:
        """Fields explicitly set by the client."""
        return self.model_dump(exclude_unset=True)


class AIConfigCreate(AIConfigBase):
    """Create request: name, URL, secret and template are required."""
    name: str = Field(..., min_length=1, max_length=100)
    endpoint_url: str
    secret: str = Field(..., min_length=1)
    request_template: RequestTemplate

    @model_validator(mode="after")
    def check_placement(self):
        if self.secret_placement == SecretPlacement.CUSTOM_HEADER and not self.custom_header_name:
            raise ValueError("custom_header_name is required when secret_placement is 'custom_header'")
        if self.secret_placement == SecretPlacement.BODY and not self.secret_body_path:
            raise ValueError("secret_body_path is required when secret_placement is 'body'")
        return self


class AIConfigUpdate(AIConfigBase):
    """Partial update request. Placement ties are checked on the merged record, not here."""


class TestConfigRequest(BaseModel):
    """Optional secret override when testing a stored configuration."""
    secret: Optional[str] = None

    __test__ = False


class GenerateRequest(BaseModel):
    """Free-form generation through the caller's configuration."""
    prompt: str = Field(..., min_length=1)
    history: Optional[List[Message]] = None
    secret: Optional[str] = None


class SentenceRequest(BaseModel):
    """Sentence generation from vocabulary words."""
    words: List[str] = Field(..., min_length=1, max_length=20)
    history: Optional[List[Message]] = None


class ApiKeyUpdate(BaseModel):
    """Account-level secret settings; api_key may be plain or 'rsa:' encrypted."""
    use_custom_api_key: bool
    api_key: Optional[str] = None


class ApiKeyTest(BaseModel):
    api_key: str = Field(..., min_length=1)
