"""
Nexus Web Hub

Webapp catalog with trust scoring, reputation aggregates, collections and
moderation.
"""

__version__ = "1.0.0"
