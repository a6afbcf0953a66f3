"""
A+ Marketplace Backend — Middleware Package
=============================================

Middleware Chain (outermost first):
    [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    The rate limiter rejects before any other work is done and stamps its
    own request ID on the 429. The access log runs inside the request-ID
    middleware and after the route, so it sees the ID, the final status
    and the authenticated user.
"""
