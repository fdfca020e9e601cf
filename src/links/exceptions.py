class ShortIdCollisionError(Exception):
    """Raised by a store backend when the short id is already taken."""

    def __init__(self, short_id: str):
        super().__init__(f"Short id {short_id!r} is already in use")
        self.short_id = short_id


class ShortIdExhaustedError(Exception):
    def __init__(self, attempts: int):
        super().__init__(f"Could not allocate a unique short id after {attempts} attempts")
        self.attempts = attempts


class AuthorizationError(Exception):
    def __init__(self, detail: str = "Authorization failed. Cannot delete message."):
        super().__init__(detail)
        self.detail = detail
