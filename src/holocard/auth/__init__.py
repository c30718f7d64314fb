"""Authentication and authorization.

Learn: Three sign-in mechanisms, one answer. Whatever signed the user in
(local session cookie, GitHub via signed JWT cookie, PocketBase auth
cookie), a single UserResolver turns the request into a CurrentUser or
None. The resolver is chosen once at startup from settings.auth_backend.

Downstream code only ever reads request.state.user, through the guards
in auth.guard.
"""
