"""
Web application package for the engine adapter.

Provides a FastAPI REST API for engine status and analysis, plus serving of
a built browser frontend when one is present.
"""
