"""Health check endpoint."""

from src.utils.http_handler import JsonRequestHandler


class handler(JsonRequestHandler):
    """Health check handler for Vercel serverless function (GET and POST)."""
    pass
