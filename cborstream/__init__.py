"""Async streaming CBOR reader and writer with bounded buffers, plus in-memory encoder and decoder."""

__version__ = "0.4.0"
__all__ = ["decode", "encode", "reader", "writer"]