"""HTTP middleware. Applied in plm.main."""

from plm.middleware.request_id import RequestIDMiddleware, get_request_id

__all__ = ["RequestIDMiddleware", "get_request_id"]
