import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ADMIN_ROLE = "admin"
SELLER_ROLE = "seller"
KNOWN_ROLES = (ADMIN_ROLE, SELLER_ROLE)
OPERATOR_ROLES = (ADMIN_ROLE, SELLER_ROLE)

GrantKind = Literal["user", "master", "code"]
ACCESS_CODE_SUBJECT_PREFIX = "access-code:"


class AuthUser(BaseModel):
    """
    Represents the bearer of a verified access token.

    ``kind`` tells a registered user apart from an access-code grant; both are
    authorized purely through ``roles``.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    kind: GrantKind = "user"

    def has_role(self, *roles: str) -> bool:
        return any(role in self.roles for role in roles)

    @property
    def access_code_id(self) -> Optional[uuid.UUID]:
        """Id of the AccessCode behind a code grant, if the subject names one."""
        if self.kind != "code" or not self.user_id.startswith(
            ACCESS_CODE_SUBJECT_PREFIX
        ):
            return None
        try:
            return uuid.UUID(self.user_id[len(ACCESS_CODE_SUBJECT_PREFIX) :])
        except ValueError:
            return None

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles
