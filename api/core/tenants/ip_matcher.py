"""
IP Matcher
==========
Matches a client address against literal IPs and CIDR ranges.

Malformed rules never raise: they simply do not match.
"""

import ipaddress
from typing import Iterable, Optional


def matches(ip: str, rules: Optional[Iterable[str]]) -> bool:
    """
    Return True when ``ip`` satisfies at least one rule.

    An empty rule list means no restriction is configured.
    """
    rules = list(rules or [])
    if not rules:
        return True

    return any(_matches_rule(ip, rule) for rule in rules)


def _matches_rule(ip: str, rule) -> bool:
    if not isinstance(rule, str):
        return False
    rule = rule.strip()
    if not rule:
        return False

    if '/' in rule:
        return _matches_cidr(ip, rule)

    return ip == rule


def _matches_cidr(ip: str, rule: str) -> bool:
    parts = rule.split('/')
    if len(parts) != 2:
        return False

    subnet, mask = parts
    if not mask.isdigit():
        return False
    prefix = int(mask)

    try:
        network_address = ipaddress.ip_address(subnet)
        candidate = ipaddress.ip_address(ip)
    except ValueError:
        return False

    if network_address.version != candidate.version:
        return False

    if network_address.version == 4:
        if prefix > 32:
            return False
        return _prefix_equal(int(candidate), int(network_address), prefix, 32)

    if prefix > 128:
        return False
    return _prefix_equal(int(candidate), int(network_address), prefix, 128)


def _prefix_equal(candidate: int, network: int, prefix: int, width: int) -> bool:
    if prefix == 0:
        return True
    mask = ((1 << prefix) - 1) << (width - prefix)
    return (candidate & mask) == (network & mask)


def is_valid_rule(value) -> bool:
    """Validate a whitelist entry: a plain IP or ``address/prefix`` in range."""
    if not isinstance(value, str):
        return False
    value = value.strip()
    if not value:
        return False

    if '/' not in value:
        try:
            ipaddress.ip_address(value)
        except ValueError:
            return False
        return True

    parts = value.split('/')
    if len(parts) != 2 or not parts[1].isdigit():
        return False
    try:
        address = ipaddress.ip_address(parts[0])
    except ValueError:
        return False
    limit = 32 if address.version == 4 else 128
    return 0 <= int(parts[1]) <= limit
