"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- errors: Domain errors and the response-envelope exception handlers
- security: Password hashing and access/refresh token signing
"""
