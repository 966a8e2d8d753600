from dataclasses import dataclass
from uuid import UUID

from fastapi import Header

from partsledger.db import get_db  # noqa: F401
from partsledger.services.common import coerce_uuid


@dataclass(frozen=True)
class RequestContext:
    """Caller identity and locale for one API request.

    Authentication is handled upstream; the gateway forwards the caller's
    person id in ``X-Actor-Id``.
    """

    actor_id: UUID | None = None
    locale: str = "en"

    @property
    def actor(self) -> str | None:
        return str(self.actor_id) if self.actor_id else None


def get_request_context(
    x_actor_id: str | None = Header(default=None),
    accept_language: str | None = Header(default=None),
) -> RequestContext:
    actor_id = coerce_uuid(x_actor_id, "X-Actor-Id") if x_actor_id else None
    locale = "en"
    if accept_language:
        primary = accept_language.split(",")[0].split(";")[0].strip()
        if primary:
            locale = primary
    return RequestContext(actor_id=actor_id, locale=locale)
