"""Realtime notification delivery and reconciliation client.

Keeps a user's unread-notification state consistent across the realtime
socket, the periodic poll and local mark-read actions.
"""
