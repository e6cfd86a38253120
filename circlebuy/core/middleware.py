from circlebuy.config import settings

BASE_SECURITY_HEADERS = [
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"referrer-policy", b"strict-origin-when-cross-origin"),
]
HSTS_HEADER = (b"strict-transport-security", b"max-age=31536000; includeSubDomains")


class SecurityHeadersMiddleware:
    """Pure ASGI middleware appending fixed security headers to every HTTP response.

    HSTS is only sent in production, where the API sits behind TLS.
    """

    def __init__(self, app, include_hsts: bool = None):
        self.app = app
        if include_hsts is None:
            include_hsts = settings.is_production
        self.headers = BASE_SECURITY_HEADERS + ([HSTS_HEADER] if include_hsts else [])

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                message["headers"] = list(message.get("headers", [])) + self.headers
            await send(message)

        await self.app(scope, receive, send_wrapper)
