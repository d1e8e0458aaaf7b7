"""Caller identity types passed between the auth boundary and the stores."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CallerIdentity:
    """What the identity provider asserts about the caller."""

    subject: str
    email: str | None = None
    name: str | None = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return self.subject


@dataclass(frozen=True)
class CallerContext:
    """The resolved caller: every store operation acts on behalf of this user."""

    user_id: str
