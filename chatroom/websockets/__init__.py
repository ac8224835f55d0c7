"""
Socket.IO event handling and fan-out.
"""
