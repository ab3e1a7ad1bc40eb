# Routes package init
"""
Music Journal Backend - API Routes Package
===========================================

Route Inventory:
    - auth.py:     POST /api/register, POST /api/login,
                   GET  /api/me,       POST /api/logout
    - journal.py:  POST/GET /api/user/albums
                   POST     /api/user/album-notes
                   POST     /api/user/ratings
                   GET      /api/user/ratings/{externalId}
    - health.py:   GET /health, GET /api/ping

Design Principle:
    Routes are THIN. They read the body and cookie, call a service, and set
    cookies/headers. Errors are raised, never formatted here: the global
    handlers in main.py own the `{"error": ...}` response shape.
"""
