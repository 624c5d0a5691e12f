"""Service definitions, registry catalogs, load-balancing strategies and JSON payloads for a microservice broker."""

__version__ = "0.1.0"

__all__ = [
    "payload",
    "serializer",
    "strategy",
    "service",
    "objects",
    "node",
    "services",
    "actions",
    "events",
]