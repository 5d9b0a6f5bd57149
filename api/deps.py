from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from api.dependencies import Services, get_services
from core.errors import Unauthorized
from core.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    services: Services = Depends(get_services),
) -> User:
    try:
        return services.auth_manager.resolve_user(token)
    except Unauthorized:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
