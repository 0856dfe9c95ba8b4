# Middleware package init
"""
Code Library Backend — Middleware Package
==========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID: correlation ID stored in a ContextVar and echoed as X-Request-ID
    - Logging: one access line per request with status and duration
    - CORS: answers browser preflights and decorates cross-origin responses
"""
