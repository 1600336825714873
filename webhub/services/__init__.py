"""
Domain Services

Catalog, reputation, moderation and social operations. Every function takes
the request's ``AsyncSession`` as its first argument and raises
``webhub.errors`` exceptions.
"""
