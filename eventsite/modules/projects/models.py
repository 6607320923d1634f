# Supabase tables: projects
# This file documents the expected database schema
# Actual operations are handled via the backend gateway in service.py

"""
Expected Supabase table structure:

projects:
- id: uuid (primary key)
- slug: text (unique, not null) - human-readable identifier used in URLs
- name: text (not null)
- description: text (nullable)
- is_active: boolean (default: true)
- og_title, og_description, og_image: text (nullable) - link preview metadata
- created_by: uuid (foreign key to auth.users.id, nullable)
- created_at: timestamp (default: now())

The project with slug "default" is a template: its site_settings rows are
copied into every newly created project.

Deleting a project cascades (ON DELETE CASCADE) to project_members,
site_settings and registrations.
"""
