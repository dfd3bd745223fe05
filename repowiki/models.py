# repowiki/models.py
from enum import Enum
from typing import List, Optional, Literal, Tuple, Union
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, model_validator

from .utils import DEFAULT_LANGUAGE

Platform = Literal["github", "gitlab", "bitbucket"]


class SourceKind(str, Enum):
    GIT = "git"
    LOCAL = "local"


class FormState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    CONFIG_PENDING = "config_pending"
    SUBMITTING = "submitting"
    NAVIGATED = "navigated"


class RepositoryLocator(BaseModel):
    """Canonical identifier of a repository reference."""
    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    source_kind: SourceKind
    full_path: Optional[str] = None
    local_path: Optional[str] = None

    @model_validator(mode="after")
    def check_kind_fields(self):
        if not self.owner or not self.repo:
            raise ValueError("owner and repo must be non-empty")
        if self.source_kind == SourceKind.LOCAL:
            if self.local_path is None or self.full_path is not None:
                raise ValueError("local locator requires local_path only")
        elif self.local_path is not None:
            raise ValueError("git locator cannot carry local_path")
        return self


class ResolutionFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw_input: str
    reason: Literal["unsupported_format", "empty_owner_or_repo"]


ResolutionResult = Union[RepositoryLocator, ResolutionFailure]


class ConfigurationBundle(BaseModel):
    platform: Platform = "github"
    access_token: Optional[str] = None
    provider: str = ""
    model: str = ""
    is_custom_model: bool = False
    custom_model: Optional[str] = None
    excluded_dirs: Optional[str] = None
    excluded_files: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    comprehensive: bool = True


class NavigationTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    query: List[Tuple[str, str]]

    @property
    def query_string(self) -> str:
        encoded = urlencode(self.query)
        return f"?{encoded}" if encoded else ""

    @property
    def url(self) -> str:
        return f"{self.path}{self.query_string}"


# HTTP payloads

class RepositoryInputRequest(BaseModel):
    repository_input: str


class SubmitRequest(BaseModel):
    repository_input: Optional[str] = None


class TargetResponse(BaseModel):
    path: str
    query: List[Tuple[str, str]]
    url: str


class ConfirmResponse(BaseModel):
    status: Literal["navigated", "ignored"]
    target: Optional[TargetResponse] = None


class FormSnapshot(BaseModel):
    state: FormState
    repository_input: str
    error: Optional[str] = None
    is_submitting: bool
    locator: Optional[RepositoryLocator] = None
    target: Optional[TargetResponse] = None
    submit_label: str
    placeholder: str


class ConfigResponse(BaseModel):
    platforms: List[str]
    languages: List[str]
    default_language: str
    defaults: ConfigurationBundle
