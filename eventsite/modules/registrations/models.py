# Supabase tables: registrations
# This file documents the expected database schema
# Actual operations are handled via the backend gateway in service.py

"""
Expected Supabase table structure:

registrations:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, on delete cascade)
- created_at: timestamp (default: now())
- name, company, department, position, phone, email, ...: text columns
  matching the registration form field ids

Rows are inserted by the public registration form and deleted only by
admins. Realtime publication must include this table for the admin
registration stream.
"""
