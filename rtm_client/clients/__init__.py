"""
Client adapters that talk to the RTM REST endpoint.
"""

__all__ = [
    "http_client",
]
