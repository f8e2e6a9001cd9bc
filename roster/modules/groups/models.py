# Supabase tables: groups (group_memberships lives in the memberships module)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key, default: gen_random_uuid())
- name: text (not null, check: length(trim(name)) > 0)
- description: text (nullable)
- created_at: timestamptz (default: now())

Listings order by created_at desc with id desc as the tie-break so that
pagination is deterministic for rows created in the same instant.
Deleting a group removes its group_memberships rows first (service.py),
whether or not the foreign key declares ON DELETE CASCADE.
"""
