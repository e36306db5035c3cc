"""Security client package.

To use the security controller client:
    from security_client.core.security import SecurityClient, HttpQueryTransport

To build a client from environment settings:
    from security_client.core.security import SecurityClient
    security = SecurityClient.from_settings()
"""
