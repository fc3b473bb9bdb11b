# Routes package init
"""
Ponto Urbano Backend — API Routes Package
===========================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource; all of them are thin and hand
       the work to the services on the ServiceContainer.

Route Inventory:
    - auth.py:     POST /cadastro                 (register, optional photo)
                   POST /login                    (open a session)
                   POST /logout                   (close it)
                   GET  /auth/check               (who am I?)
    - reports.py:  GET  /problemas                (every report, newest first)
                   POST /problemas                (new report, session required)
                   DELETE /problemas/{id}/foto    (drop a report's photo)
    - users.py:    PUT  /perfil                   (update own name/photo)
                   GET  /usuario/{id}             (public profile)
    - uploads.py:  GET  /uploads/{path}           (locally stored photos)
    - health.py:   GET  /health                   (service health check)

Paths and JSON keys are Portuguese because the browser frontend already
speaks them; everything server-side is named in English.
"""
