# Supabase tables: permissions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure (schema: hub):

permissions:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, on delete cascade)
- app_id: uuid (foreign key to applications.id, on delete cascade)
- access_level: text (not null) - values: editor, viewer, locked
- granted_by: uuid (nullable, profiles.id of the admin)
- granted_at: timestamp (default: now())
- unique constraint on (user_id, app_id)

An explicit 'locked' row is an override that beats group grants; no row at
all falls back to group grants, then default deny.

Remote procedures:
- get_user_apps(p_user_id uuid) -> setof (app_id, app_name, app_url,
  app_description, app_icon, app_color, app_category, app_is_active,
  app_is_public, app_display_order, access_level, permission_source)
- get_app_access_stats(p_app_id uuid) -> (total_users, editors, viewers, locked)
"""
