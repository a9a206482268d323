"""
SkyTools Application Layer

Configuration, metrics and the aiohttp service exposing identity resolution
over HTTP.

Key Components:
- cli.py: Logging setup and the server entry point
- server.py: Web server configuration and middleware setup
- config.py: Configuration management using Pydantic settings
- metrics.py: Telegraf and no-op metrics clients
- handlers/: Request handlers for the resolution endpoints

The application uses two middleware layers:
- Statsd middleware for metrics collection
- Sentry middleware for error reporting
"""
