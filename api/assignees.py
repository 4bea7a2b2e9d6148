"""Distinct assignee names endpoint for Vercel."""

from src.utils.http_handler import JsonRequestHandler


class handler(JsonRequestHandler):
    """Vercel serverless function handler for assignees."""
    pass
