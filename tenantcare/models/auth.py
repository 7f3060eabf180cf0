from typing import Optional

from pydantic import BaseModel, ConfigDict

NO_TENANT_LOCATOR = "none"


class TokenClaims(BaseModel):
    """Claims carried by the caller identity token."""

    model_config = ConfigDict(extra="ignore")

    sub: str
    role: str
    store_locator: Optional[str] = None
    email: Optional[str] = None
    token_type: str = "access"
    exp: Optional[int] = None
    iat: Optional[int] = None

    @property
    def user_id(self) -> str:
        return self.sub

    @property
    def has_tenant(self) -> bool:
        return bool(self.store_locator) and self.store_locator != NO_TENANT_LOCATOR
