"""Core client logic.

Module Structure:
    - security/         : Security controller client (roles, profiles, users)

Usage Pattern:
    Import explicitly when needed:
        from security_client.core.security import SecurityClient, HttpQueryTransport
"""
