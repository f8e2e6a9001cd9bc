# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth owns sign-up, sign-in,
# session cookies and JWT issuance; the front end talks to it directly.

"""
This backend only consumes the result:
- auth.get_user(jwt) - resolve the bearer token to the acting user

The user's id is treated as an opaque string and is the user_id written to
group_memberships rows.
"""
