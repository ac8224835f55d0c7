"""
Configuration and storage helpers.
"""
