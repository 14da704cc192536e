"""
Accounts Infrastructure Layer
=============================

Infrastructure implementations for the accounts module.

Contains:
- models: UserRoleModel
- repositories: SQLAlchemyRoleRepository
- identity: GoTrueIdentityProvider

Submodules are imported directly; the policy set depends on the models.
"""
