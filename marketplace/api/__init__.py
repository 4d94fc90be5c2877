"""
HTTP application layer: thin FastAPI routers over the booking services.
"""
