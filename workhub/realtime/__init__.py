"""Realtime infrastructure: the Socket.IO server and its publishers."""
