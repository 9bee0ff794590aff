"""Users: 4.0/users."""

from typing import ClassVar

from lookerapi.http.response import ApiResponse
from lookerapi.resources.base import LookerModel, ResourceOps


class User(LookerModel):
    id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    display_name: str | None = None
    is_disabled: bool | None = None
    locale: str | None = None
    home_folder_id: str | None = None
    group_ids: list[str] | None = None
    role_ids: list[str] | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {
        "display_name",
        "group_ids",
        "role_ids",
    }


class EmailCredentials(LookerModel):
    email: str
    forced_password_reset_at_next_login: bool | None = None
    is_disabled: bool | None = None
    created_at: str | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {"created_at", "is_disabled"}


class Users(ResourceOps[User]):
    path = "4.0/users"
    model = User

    async def me(self) -> ApiResponse[User]:
        """The user the API credentials belong to."""
        return await self._engine.do("GET", "4.0/user", decode_into=User)

    async def create_email_credentials(
        self, user_id: str, credentials: EmailCredentials
    ) -> ApiResponse[EmailCredentials]:
        """Attach an email/password login to a user (required before they can log in)."""
        return await self._engine.do(
            "POST",
            f"{self._item_path(user_id)}/credentials_email",
            body=credentials,
            decode_into=EmailCredentials,
        )

    async def delete_email_credentials(self, user_id: str) -> ApiResponse[None]:
        return await self._engine.do("DELETE", f"{self._item_path(user_id)}/credentials_email")
