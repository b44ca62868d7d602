"""
FastAPI application for the LMS LTI launch API.

The ASGI entry point is ``api.app:app``; ``api.app.get_app`` builds a fresh
instance.
"""
