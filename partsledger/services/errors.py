"""Error taxonomy for inventory lifecycle services."""

from __future__ import annotations


class InventoryError(Exception):
    """Base error carrying a machine-readable code and an HTTP status."""

    status_code = 400

    def __init__(self, code: str, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.code = code
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def as_dict(self) -> dict:
        return {"code": self.code, "detail": self.detail}


class InventoryValidationError(InventoryError):
    status_code = 400


class InventoryNotFoundError(InventoryError):
    status_code = 404


class InventoryConflictError(InventoryError):
    status_code = 409


class InventoryDuplicateError(InventoryError):
    status_code = 409

    def __init__(self, code: str, detail: str, serials: list[str] | None = None):
        super().__init__(code, detail)
        self.serials = serials or []

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["serials"] = self.serials
        return data


class RaceLostError(InventoryError):
    """A conditional status update matched no row.

    Raised by the part item ledger; callers absorb it (reservation) or turn
    it into a conflict (issue posting). It never reaches the API as-is.
    """

    status_code = 409

    def __init__(self, item_id, expected, actual):
        super().__init__(
            "race_lost",
            f"Part item {item_id} is {getattr(actual, 'value', actual)}, expected {expected}",
        )
        self.item_id = item_id
        self.expected = expected
        self.actual = actual

