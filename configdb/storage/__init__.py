"""
Store sessions and flat key encoding.
"""
