from .api_client import ApiClient, parse_payload

__all__ = ["ApiClient", "parse_payload"]
