"""Payload builders for realtime events.

These modules only shape payloads; they must not define Socket.IO server
instances or connection handlers.
"""
