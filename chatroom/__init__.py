"""
Real-time chat room relay.
"""
