"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Logging setup
- Post-commit change notifications
"""
