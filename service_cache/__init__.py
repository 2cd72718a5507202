"""
Key/value cache gateway service.
"""
