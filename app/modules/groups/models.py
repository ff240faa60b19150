# Supabase tables: groups, group_members, group_permissions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure (schema: hub):

groups:
- id: uuid (primary key)
- name: text (unique, not null)
- description: text (nullable)
- color: text (nullable) - presentation only
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (group_id, user_id)

group_permissions:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null)
- app_id: uuid (foreign key to applications.id, not null)
- access_level: text (not null) - values: editor, viewer, locked
- granted_by: uuid (nullable, profiles.id of the admin)
- granted_at: timestamp (default: now())
- unique constraint on (group_id, app_id)
"""
