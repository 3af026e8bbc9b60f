"""Backend package for the school website.

Modules grouped by responsibility:
- config: settings loaded once from the environment, public projection
- rate_limit: fixed-window per-client rate limiting
- validators: contact form and logo upload checks
- middleware / dependencies: the request pipeline
- routers: the HTTP endpoints and the static-site fallback

The ASGI application is ``school_backend.main:app``.
"""
