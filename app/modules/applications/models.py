# Supabase tables: applications
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure (schema: hub):

applications:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- url: text (nullable)
- icon: text (nullable) - logical icon name, mapped to an asset by the frontend
- color: text (nullable)
- category: text (not null, default: 'secondary') - values: primary, secondary (UI grouping only)
- is_public: boolean (not null, default: false) - every signed-in user gets at least viewer
- is_active: boolean (not null, default: true) - inactive apps are locked for everyone
- display_order: integer (not null, default: 0)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Deleting an application removes its rows in permissions and group_permissions.
"""
