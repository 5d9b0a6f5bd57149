"""Storage account models"""

from typing import Optional

from pydantic import Field

from api.models.common import APIModel


class AccountCreate(APIModel):
    """Model for adding a storage account"""

    name: str = Field(..., min_length=1, description="Display name")
    account_id: str = Field(..., min_length=1, description="Cloudflare account id")
    api_token: str = Field(..., min_length=1, description="API token with R2 read access")


class AccountUpdate(APIModel):
    """Model for renaming or (de)activating an account"""

    name: Optional[str] = None
    is_active: Optional[bool] = None


class AccountResponse(APIModel):
    """Account as returned to clients; the API token is never included"""

    id: str
    name: str
    account_id: str
    is_active: bool
    created_at: str


class AccountDeleteResponse(APIModel):
    deleted_account: str
    deleted_cache_entries: int
