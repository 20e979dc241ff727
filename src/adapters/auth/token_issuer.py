"""Auth token issuer adapter - Implements AuthTokenIssuer protocol."""

from src.domain.cancellation import CancelScope
from src.domain.entities import User
from src.domain.uuidv7 import new_uuid7


class UuidTokenIssuer:
    """Issues opaque, time-ordered authentication tokens."""

    def issue(self, scope: CancelScope, user: User) -> str:
        scope.check()
        return new_uuid7()
