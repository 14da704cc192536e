"""
Infrastructure
==============

Cross-context infrastructure: database engine, sessions and the row-level
policy set.
"""
