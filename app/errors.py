from __future__ import annotations


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, *, cause: str | None = None, details: list | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details

    def to_detail(self) -> dict:
        detail: dict = {'message': self.message}
        if self.cause:
            detail['error'] = self.cause
        if self.details:
            detail['errors'] = self.details
        return detail


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class AllocationExhaustedError(ConflictError):
    pass


class StoreError(ServiceError):
    status_code = 500


class TransactionError(StoreError):
    pass
