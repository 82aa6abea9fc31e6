"""
RecipeBox Backend — Middleware Package
========================================

Middleware Chain (outermost first):
    Request → [Request ID] → [Session] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log and every handler share the id.
    Session decodes the signed cookie into request.session for the Auth Gate
    and for the access log, which records the user id.
"""
