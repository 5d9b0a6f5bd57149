from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from api.dependencies import Services, get_services
from api.models.auth import RegisterRequest, TokenResponse, UserInfo

router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    services: Services = Depends(get_services),
) -> TokenResponse:
    try:
        user = services.auth_manager.register(request.email, request.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    access_token = services.auth_manager.create_access_token(data={"sub": user.email})
    return TokenResponse(access_token=access_token, user=UserInfo(id=user.id, email=user.email))


@router.post("/token", response_model=TokenResponse)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    services: Services = Depends(get_services),
) -> TokenResponse:
    user = services.auth_manager.authenticate(form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = services.auth_manager.create_access_token(data={"sub": user.email})
    return TokenResponse(access_token=access_token, user=UserInfo(id=user.id, email=user.email))
