"""
Accounts Module
===============

Bounded Context for identity and roles.

Responsibilities:
- Sign-up, sign-in and sign-out against the external identity provider
- Self-registration of the caller's own role row
- Role resolution for view routing (submitter unless a handler grant exists)
- Building the per-call CallerContext every other module receives
"""
