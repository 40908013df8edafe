"""Realtime infrastructure (Socket.IO presence and message relay).

The connection registry, presence broadcaster and message relay are plain
objects with no Socket.IO dependency; ``socketio.py`` wires them to the
process-wide ``AsyncServer``.
"""
