# Middleware package init
"""
NoteCraft Backend: Middleware Package
=======================================

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    The request ID is assigned before the access log line is written, so
    every log record of a request carries the same correlation ID.
"""
