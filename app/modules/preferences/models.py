# Supabase tables: user_settings
# This file documents the expected database schema
# Actual operations are handled via store.py

"""
Expected Supabase table structure (schema: hub):

user_settings:
- user_id: uuid (foreign key to profiles.id, on delete cascade)
- key: text (not null)
- value: jsonb (not null)
- updated_at: timestamp (default: now())
- unique constraint on (user_id, key)

Preferences are user-local presentation settings (display name, language,
timezone, avatar). They are never inputs to permission resolution.
"""
