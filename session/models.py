"""Session data model."""

from pydantic import BaseModel, ConfigDict


class Session(BaseModel):
    """
    A user session.

    Sessions are immutable; saving a session under an existing id
    replaces the stored session wholesale.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    username: str
