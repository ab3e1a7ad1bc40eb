# Services package init
"""
Music Journal Backend - Services Layer
=======================================

What:  Business logic between routes (HTTP) and the database.

Service Inventory:
    - CredentialService: password policy, bcrypt hashing, login verification
    - SessionService:    opaque session tokens with a fixed expiry
    - CatalogService:    external album id → shared album row (create once)
    - JournalService:    saved albums, notes and track ratings per user

Every service method takes the request's AsyncSession as its first argument
and holds no per-request state, so each is a module-level singleton.
"""
