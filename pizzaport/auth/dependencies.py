from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, Request,HTTPException,status
from fastapi.security import HTTPBearer , http
from jose import jwt, JWTError
from pizzaport.auth.constants import logger


@dataclass(frozen=True)
class SessionUser:
    """Identity carried by the hosted auth provider's session token."""
    user_id: str
    email: Optional[str]
    name: Optional[str]
    is_admin: bool = False


class Authentication(HTTPBearer):
    def __init__(self,auto_error=True): 
        super().__init__(auto_error=auto_error)

    async def __call__(self, request:Request) -> Optional[SessionUser]:
        auth_creds=await super().__call__(request)
        if auth_creds is None:
            return None   # only reachable with auto_error=False
        token=auth_creds.credentials

        decoded_token=self.decode_token(request, token)

        if not decoded_token or not decoded_token.get("sub"):
            logger.warning("auth.token.invalid", extra={"path": request.url.path})
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,detail="Invalid or expired token provided.")
        
        return SessionUser(
            user_id=str(decoded_token["sub"]),
            email=decoded_token.get("email"),
            name=decoded_token.get("name"),
            is_admin=bool(decoded_token.get("admin", False)),
        )
    
    def decode_token(self, request: Request, token:str):
        """To verify the signature , expiration and user claims of token"""
        settings = request.app.state.settings
        try:
            token_data=jwt.decode(
            token,
            key=settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGO]
            )
            return token_data
        except JWTError:
            return None


get_current_user = Authentication()
get_optional_user = Authentication(auto_error=False)


async def require_user_email(user: SessionUser = Depends(get_current_user)) -> SessionUser:
    if not user.email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


async def require_admin(user: SessionUser = Depends(get_current_user)) -> SessionUser:
    if not user.is_admin:
        logger.warning("auth.admin.forbidden", extra={"user_id": user.user_id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden - Admin access required")
    return user
