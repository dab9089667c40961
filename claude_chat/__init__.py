"""
Backend for the Telegram Claude Chat Mini App.

It exposes subpackages for API routers, core utilities,
domain models, service layer abstractions, and repositories.
"""
