"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json


class handler(BaseHTTPRequestHandler):
    """Liveness probe for the Vercel deployment."""

    def do_GET(self):
        """Handle GET request."""
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        response = json.dumps({"status": "ok", "service": "linknow-backend"})
        self.wfile.write(response.encode('utf-8'))

    def do_POST(self):
        """Same as GET."""
        self.do_GET()

    def log_message(self, format, *args):
        pass
