"""Runtime helpers for the HTTP server."""
