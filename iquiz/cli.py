"""Argument helpers shared by the server and client command lines."""

import ipaddress

from iquiz.errors import ArgumentError


def ipv4_address(value: str) -> str:
    """argparse type: a dotted-quad IPv4 address."""
    try:
        return str(ipaddress.IPv4Address(value))
    except ValueError as e:
        raise ArgumentError(f"not an IPv4 address: {value!r}") from e


def port_number(value: str) -> int:
    """argparse type: a TCP port, 0-65535 (0 lets the OS pick one)."""
    try:
        port = int(value)
    except ValueError as e:
        raise ArgumentError(f"not a port number: {value!r}") from e
    if not 0 <= port <= 65535:
        raise ArgumentError(f"port out of range: {port}")
    return port


def timeout_seconds(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError as e:
        raise ArgumentError(f"not a number of seconds: {value!r}") from e
    if seconds <= 0:
        raise ArgumentError(f"timeout must be positive: {seconds}")
    return seconds
