"""
Request Desk
============

Department request tracking service: submitters file requests, a keyword
classifier routes them, and handlers triage and comment on them.
"""

__version__ = "1.0.0"
