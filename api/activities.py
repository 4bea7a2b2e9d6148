"""Activities CRUD endpoint for Vercel.

Serves both ``/api/activities`` and ``/api/activities/<id>``; the item route
is rewritten to this function and dispatched on the original request path.
"""

from src.utils.http_handler import JsonRequestHandler


class handler(JsonRequestHandler):
    """Vercel serverless function handler for activities."""
    pass
