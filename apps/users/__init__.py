"""Users app package.

Accounts, JWT authentication flows and the profile endpoint. Use
``apps.users.models.CustomUser`` as the AUTH_USER_MODEL throughout
the project.
"""
