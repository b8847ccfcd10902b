"""Users app package.

Defines the custom user model with the ``student`` / ``owner`` / ``admin``
roles. Use ``apps.users.models.CustomUser`` as the AUTH_USER_MODEL
throughout the project.
"""
