# Identity lives in Supabase Auth (auth.users); the hub keeps no credentials.
# Calls used by AuthService: auth.sign_up, auth.sign_in_with_password,
# auth.get_user(jwt=...), auth.sign_out.

"""
Link between an auth identity and the hub:

auth.users.id == hub.profiles.id

An on-insert trigger on auth.users writes the profiles row with role 'user'
and is_active true. The row may not be readable yet on the very first
request after sign-up; GET /auth/me waits for it with the profile retry
policy and inserts it itself when it never appears
(UserService.ensure_profile).

Roles are only ever changed through the update_user_role procedure.
"""
