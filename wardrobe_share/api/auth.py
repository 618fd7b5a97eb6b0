"""Authentication helpers and route dependencies."""

from fastapi import Depends, Header, HTTPException, status

from wardrobe_share.services.principal import Principal, is_valid_id


def require_principal(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
) -> Principal:
    """
    Build the caller's identity from headers set by the upstream auth proxy.

    Credentials are verified before requests reach this service; the headers
    are trusted as-is and only checked for shape.
    """

    if not x_user_id or not is_valid_id(x_user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    return Principal(id=x_user_id, email=(x_user_email or "").strip())


PrincipalDependency = Depends(require_principal)
