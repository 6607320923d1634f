# Supabase tables: project_members
# This file documents the expected database schema
# Actual operations are handled via the backend gateway in service.py

"""
Expected Supabase table structure:

project_members:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- role: text (not null) - values: owner, admin, editor, viewer
- created_at: timestamp (default: now())
- unique constraint on (project_id, user_id)

No row for (project_id, user_id) means the user is not a member.
"""
