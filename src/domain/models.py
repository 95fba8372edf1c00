from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

# GitHub repository names: letters, digits, '.', '-', '_'
REPO_NAME_PATTERN = r"^[A-Za-z0-9._-]+$"
# Git refs may not contain whitespace, '~', '^', ':', '?', '*', '[' or '\'
BRANCH_NAME_PATTERN = r"^[^\s~^:?*\[\\]+$"


class OrganizationConfig(BaseModel):
    """Public/private organization pair a logical organization id resolves to."""
    model_config = ConfigDict(frozen=True)

    public_org: str = Field(..., min_length=1)
    private_org: str = Field(..., min_length=1)


class IdentityRole(str, Enum):
    CONTRIBUTION = "contribution"
    PRIVATE = "private"
    APP = "app"


class IdentityContext(BaseModel):
    """
    API client plus credential for one authorization role.
    The client is any object exposing the remote repository operations.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    role: IdentityRole
    client: Any
    access_token: str = Field(..., repr=False)
    installation_id: Optional[int] = None


class IdentityBundle(BaseModel):
    """The three contexts a mirror saga needs. Built per request."""
    model_config = ConfigDict(frozen=True)

    contribution: IdentityContext
    private: IdentityContext
    app: IdentityContext


class MirrorRequest(BaseModel):
    """Already-validated input of the create-mirror saga."""
    model_config = ConfigDict(frozen=True)

    fork_repo_owner: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9-]+$")
    fork_repo_name: str = Field(..., min_length=1, max_length=100, pattern=REPO_NAME_PATTERN)
    new_repo_name: str = Field(..., min_length=1, max_length=100, pattern=REPO_NAME_PATTERN)
    new_branch_name: str = Field(..., min_length=1, max_length=255, pattern=BRANCH_NAME_PATTERN)

    @field_validator("new_branch_name")
    @classmethod
    def check_ref_format(cls, value: str) -> str:
        # Rules from git-check-ref-format that the character pattern cannot express
        if value.startswith("-") or value == "@" or "@{" in value:
            raise ValueError("branch name may not start with '-' or contain '@{'")
        if ".." in value or "//" in value:
            raise ValueError("branch name may not contain '..' or '//'")
        if value.endswith((".lock", ".", "/")):
            raise ValueError("branch name may not end with '.lock', '.' or '/'")
        if any(part.startswith(".") for part in value.split("/")):
            raise ValueError("branch name components may not start with '.'")
        return value

    @property
    def fork_full_name(self) -> str:
        return f"{self.fork_repo_owner}/{self.fork_repo_name}"


class MirrorRepository(BaseModel):
    """
    Immutable domain model of a private mirror repository.
    `fork` is the value of the repository's `fork` custom property, when GitHub returns it.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Numeric GitHub repository id")
    name: str
    full_name: str
    owner: str = Field(..., description="Login of the owning organization")
    private: bool = True
    html_url: Optional[str] = None
    description: Optional[str] = None
    default_branch: Optional[str] = None
    fork: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MirrorResult(BaseModel):
    """Outcome of create-mirror. `data` is only present on success."""
    model_config = ConfigDict(frozen=True)

    success: bool
    data: Optional[MirrorRepository] = None
