# Supabase tables: profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure (schema: hub):

profiles:
- id: uuid (primary key, references auth.users.id on delete cascade)
- email: text (unique, not null) - synced from auth.users
- full_name: text (nullable)
- avatar_url: text (nullable)
- role: text (not null, default: 'user') - values: admin, user
- is_active: boolean (not null, default: true)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Remote procedures (security definer, re-check the guards server-side):
- delete_user(target_user_id uuid, actor_id uuid) - refuses self-deletion and
  deleting the last admin, deletes auth.users (cascades to profiles,
  group_members, permissions)
- update_user_role(target_user_id uuid, new_role text, actor_id uuid) - refuses
  self-demotion and demoting the last admin

At least one active profile with role 'admin' must exist at all times.
"""
