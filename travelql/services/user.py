from typing import Optional

from ..models import User
from .base import BaseService


class UserService(BaseService[User]):
    table = "users"
    entity = User
    filter_columns = {
        "ids": "id",
        "search": "username",
        "username": "username",
        "email": "email",
        "locale": "locale",
        "created_at": "created_at",
    }
    order_clauses = {
        "NAME_ASC": "username ASC, id ASC",
        "NAME_DESC": "username DESC, id DESC",
        "CREATED_AT_ASC": "created_at ASC, id ASC",
        "CREATED_AT_DESC": "created_at DESC, id DESC",
        "VISITS_DESC": "(SELECT COUNT(*) FROM visits WHERE visits.user_id = users.id) DESC, id ASC",
    }
    default_order = "username ASC, id ASC"
    writable_columns = ("username", "email", "picture", "locale")

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.find_one_by("email", email.strip())
