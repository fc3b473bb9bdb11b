"""
Ponto Urbano Backend — Middleware Package
===========================================

Middleware Chain (outermost first):
    Request → [CORS] → [GZip] → [Logging] → [Request ID] → [Session cookie] → Route Handler

    - CORS outermost so preflight requests are answered before anything else
    - Request ID inside Logging: the id is set in a child task, so Logging
      reads it from request.state after call_next returns
    - Session (Starlette SessionMiddleware) innermost: only handlers need it
"""
