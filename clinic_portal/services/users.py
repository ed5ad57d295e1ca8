from typing import Optional

from clinic_portal.schemas.user import UserAccount, UserCreate, UserUpdate
from clinic_portal.services.invalidation import Mutation, QueryFamily
from clinic_portal.services.query_cache import Listener, QueryKey, QueryResult, Subscription
from clinic_portal.services.resources import ResourceService


def _parse_list(data: list) -> list[UserAccount]:
    return [UserAccount.model_validate(row) for row in data]


class UserService(ResourceService):
    """User accounts. The API only serves these to ADMIN credentials."""

    def list_key(self) -> QueryKey:
        return self.key(QueryFamily.USER_LIST, "/api/admin/users/list")

    async def users_list(self) -> QueryResult:
        return await self._query(self.list_key(), _parse_list)

    def watch_users_list(self, listener: Optional[Listener] = None) -> Subscription:
        return self._subscribe(self.list_key(), self.settings.list_refresh_seconds, listener, _parse_list)

    async def get_user(self, user_id: int) -> UserAccount:
        data = await self._get(f"/api/admin/users/{user_id}", "Fetch user")
        return UserAccount.model_validate(data)

    async def create_user(self, data: UserCreate):
        data.validate_required()
        return await self._mutate(
            Mutation.CREATE_USER, "POST", "/api/admin/users/add", "Create user", json=data.to_wire()
        )

    async def update_user(self, user_id: int, data: UserUpdate):
        data.validate_required()
        return await self._mutate(
            Mutation.UPDATE_USER, "PUT", f"/api/admin/users/update/{user_id}", "Update user",
            json=data.to_wire(),
        )

    async def delete_user(self, user_id: int) -> None:
        await self._mutate(Mutation.DELETE_USER, "DELETE", f"/api/admin/users/delete/{user_id}", "Delete user")
