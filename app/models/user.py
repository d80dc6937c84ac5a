# app/models/user.py
from sqlmodel import SQLModel, Field


class Shopper(SQLModel):
    """
    Authenticated storefront customer.

    Identity:
      - id: the "sub" claim of the shopper's access token

    Accounts live in the upstream auth service. We only keep what is
    needed to key per-shopper state and to call upstream on their behalf.
    """

    id: str = Field(description="Upstream user id (JWT 'sub')")
    email: str | None = None

    # Raw bearer token, forwarded to upstream collaborators
    token: str = Field(exclude=True)
