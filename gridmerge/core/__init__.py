"""Core grid/token model (coordinates, procedural tokens, override store, interaction engine).

Kept free of FastAPI and Redis concerns so it can be reused by API routes, scripts, and tests.
"""
