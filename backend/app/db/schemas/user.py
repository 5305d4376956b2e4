from .base import CamelModel


class UserSummary(CamelModel):
    id: int
    name: str | None = None
    email: str


class MentorSummary(UserSummary):
    category_id: int | None = None
