"""Portfolio API - Backend.

A small HTTP/JSON backend for a portfolio web frontend:
- Users register and log in with email + password (bcrypt hashes).
- Login sets an httpOnly `token` cookie holding a short-lived JWT.
- Portfolios are readable by anyone, but only their owner may change them.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
