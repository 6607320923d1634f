# Supabase tables: site_settings
# This file documents the expected database schema
# Actual operations are handled via the backend gateway in service.py

"""
Expected Supabase table structure:

site_settings:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, on delete cascade)
- category: text (not null) - home, program, registration, location, general
- key: text (not null) - namespaced by category prefix, e.g. program_enabled
- value: text (not null) - plain string, "true"/"false", or JSON text
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

One row per (project_id, category, key). Realtime publication must include
this table for the settings stream to receive change events.
"""
