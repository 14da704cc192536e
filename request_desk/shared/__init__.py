"""
Shared Kernel Module
====================

Generic infrastructure used by every bounded context (accounts, requests):
structured logging, HTTP middleware and the change feed.

DO NOT add business logic from accounts or requests to shared kernel.
"""
