"""Route modules mounted by :mod:`login_server.api.server`."""
