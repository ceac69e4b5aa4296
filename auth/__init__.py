"""
Auth package for FastAPI applications.

Provides anonymous owner identity carried in a signed `auth_token` cookie.
The IdentityService is framework-agnostic; FastAPI glue lives in
`auth.dependencies`.
"""
