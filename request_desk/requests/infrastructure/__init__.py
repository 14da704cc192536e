"""
Requests Infrastructure Layer
=============================

Infrastructure implementations for the requests module.

Contains:
- models: RequestModel, RequestCommentModel and their timestamp hooks
- repositories: SQLAlchemyRequestRepository, SQLAlchemyCommentRepository

Submodules are imported directly; the policy set depends on the models.
"""
