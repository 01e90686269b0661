from .link_client import WikiLinkClient, backoff_delay

__all__ = ["WikiLinkClient", "backoff_delay"]
