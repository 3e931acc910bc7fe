"""Quote relay: one upstream price stream fanned out to many WebSocket clients."""

__version__ = "0.1.0"
