# Supabase tables: auth.users, user_roles, profiles
# This file documents the expected database schema
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

user_roles:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id, not null)
- role: text (not null) - global staff role: master, mnc_admin, project_staff
- created_at: timestamp (default: now())

profiles:
- user_id: uuid (primary key, references auth.users.id)
- email: text (unique)
- name: text (nullable)
- organization: text (nullable)
- position: text (nullable)
- approved: boolean (default: false) - set when staff approve the sign-up
- created_at: timestamp (default: now())

Global staff roles are distinct from per-project roles in project_members.
"""
