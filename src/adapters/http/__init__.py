from .routing_api_client import HttpRoutingGateway

__all__ = ["HttpRoutingGateway"]
