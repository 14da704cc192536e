"""
Requests Module
===============

Bounded Context for department request tracking.

Responsibilities:
- Classify new requests by keyword rules (category, priority, unit, reply)
- Persist requests and comments under the row-level policy set
- Handler triage: status, priority, category, assignment, deadline
- Live refresh of request lists and comment threads
"""
