# Middleware package init
"""
Music Journal Backend - Middleware Package
===========================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit: rejects credential-guessing bursts before any DB work
    2. Request ID: sets the correlation id used by every later log line
    3. Logging:    records status and duration once the response exists
"""
