"""Current-user identity: who is acting and for which company."""

from dataclasses import dataclass

from job_desk.database.models import User


@dataclass(frozen=True)
class Identity:
    """The authenticated user and the tenant every write is scoped to."""

    user_id: int
    company_id: int


def identity_for(user: User) -> Identity:
    if user.id is None or user.company_id is None:
        raise ValueError("User must be saved and belong to a company")
    return Identity(user_id=user.id, company_id=user.company_id)
