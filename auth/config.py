"""
Configuration for the auth module.

Cookie name and lifetime are fixed; the signing secret is injected into
IdentityService by the app factory (see shortlink.config).
"""

COOKIE_NAME = "auth_token"
COOKIE_MAX_AGE = 365 * 24 * 60 * 60  # one year, seconds
COOKIE_PATH = "/"
