"""
Cache gateway service application package.
"""
