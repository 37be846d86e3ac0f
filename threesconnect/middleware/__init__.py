# Middleware package init
"""
3sConnect Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    - Request ID runs first so the access log line and any error response
      carry the correlation id.
    - The access log sees the final status code and total duration.
"""
