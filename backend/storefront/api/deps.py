from collections.abc import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.db import get_session
from storefront.core.security import ADMIN_ROLE, decode_access_token
from storefront.services.taxonomy import TaxonomyKind, TaxonomyService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


async def get_current_admin(token: str = Depends(oauth2_scheme)) -> str:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
    )
    try:
        payload = decode_access_token(token)
    except ValueError:
        raise unauthorized

    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise unauthorized
    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only site admins can perform this action",
        )
    return subject


def taxonomy_service_dependency(kind: TaxonomyKind) -> Callable[..., TaxonomyService]:
    def get_taxonomy_service(
        session: AsyncSession = Depends(get_session),
    ) -> TaxonomyService:
        return TaxonomyService(session, kind)

    return get_taxonomy_service
