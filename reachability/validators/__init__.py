"""Address validators."""

from reachability.validators.ip import extract_ipv4, is_ipv4_literal, is_private_ip

__all__ = ["extract_ipv4", "is_ipv4_literal", "is_private_ip"]
