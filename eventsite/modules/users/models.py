# Supabase tables: profiles, user_roles
# This file documents the expected database schema
# Actual operations are handled via the backend gateway in service.py

"""
Staff administration works on the same tables as auth:

profiles:
- user_id, email, name
- approved: boolean (default: false)
- created_at: timestamp

user_roles:
- user_id
- role: text - one of master, mnc_admin, project_staff

A user holds at most one staff role; granting a role replaces any other.
Rejecting a pending sign-up deletes its profile row.
"""
