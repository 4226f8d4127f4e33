"""
Test fixtures package for support SDK tests.

- transports.py: scripted FakeTransport and exchange builders

Usage:
    from fixtures.transports import FakeTransportFactory, make_exchange

    def test_something():
        factory = FakeTransportFactory().queue(make_exchange(404, "Not Found"))
"""

from .transports import (
    FakeTransport,
    FakeTransportFactory,
    ScriptedExchange,
    make_exchange,
    make_failure,
)

__all__ = [
    "FakeTransport",
    "FakeTransportFactory",
    "ScriptedExchange",
    "make_exchange",
    "make_failure",
]
