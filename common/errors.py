"""Base class for domain errors raised by services.

Services raise; views translate to HTTP responses using ``code``.
"""


class DomainError(Exception):
    code = "DOMAIN_ERROR"

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code

    @property
    def detail(self) -> str:
        return str(self)

    def as_body(self) -> dict:
        """Error body returned by API views: ``{"detail": ..., "code": ...}``."""

        return {"detail": self.detail, "code": self.code}
