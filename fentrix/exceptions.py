from typing import Optional, Dict, Any


class FentrixError(Exception):
    status_code = 500

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(FentrixError):
    status_code = 400


class UnauthorizedError(FentrixError):
    status_code = 401


class NotFoundError(FentrixError):
    status_code = 404


class DatabaseError(FentrixError):
    pass


class ExternalServiceError(FentrixError):
    status_code = 502


class LLMServiceError(ExternalServiceError):
    pass


class ScrapingError(ExternalServiceError):
    pass
