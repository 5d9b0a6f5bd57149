"""Storage account endpoints"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import Services, get_services
from api.deps import get_current_user
from api.models.accounts import (
    AccountCreate,
    AccountDeleteResponse,
    AccountResponse,
    AccountUpdate,
)
from core.errors import NotFound
from core.models import Account, User

router = APIRouter()


def _to_response(account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        name=account.name,
        account_id=account.account_id,
        is_active=account.is_active,
        created_at=account.created_at,
    )


@router.get("/accounts", response_model=List[AccountResponse])
async def list_accounts(user: User = Depends(get_current_user)):
    """List the user's storage accounts"""
    return [_to_response(account) for account in user.accounts]


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    account: AccountCreate,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Add a storage account"""
    created = services.account_manager.add_account(
        user.email, account.name, account.account_id, account.api_token
    )
    return _to_response(created)


@router.put("/accounts/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: str,
    account: AccountUpdate,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Rename or (de)activate an account"""
    try:
        updated = services.account_manager.update_account(
            user.email, account_id, name=account.name, is_active=account.is_active
        )
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _to_response(updated)


@router.delete("/accounts/{account_id}", response_model=AccountDeleteResponse)
def delete_account(
    account_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Delete an account and its cached bucket stats"""
    try:
        deletion = services.account_manager.delete_account(user.email, account_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return AccountDeleteResponse(
        deleted_account=deletion.account_name,
        deleted_cache_entries=deletion.deleted_cache_entries,
    )
