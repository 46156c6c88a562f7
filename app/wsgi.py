"""
WSGI adapter for hosts that only speak WSGI (e.g. PythonAnywhere).
Wraps the ASGI simulator application with a2wsgi.
"""
from a2wsgi import ASGIMiddleware  # type: ignore
from app.main import app

# This 'application' object is what the WSGI server looks for
application = ASGIMiddleware(app)  # type: ignore
