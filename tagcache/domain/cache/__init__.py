"""
Cache Domain Module

Domain-Driven Design implementation for tag-indexed caching.
"""
