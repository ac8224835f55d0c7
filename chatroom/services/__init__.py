"""
Chat core: presence, message operations and history reconstruction.
"""
