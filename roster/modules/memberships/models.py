# Supabase table: group_memberships
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

group_memberships:
- group_id: uuid (foreign key to groups.id, not null)
- user_id: uuid (foreign key to auth.users.id, not null)
- created_at: timestamptz (default: now())
- primary key (group_id, user_id)

A row's existence is the only record that a user belongs to a group; there is
no status column and rows are never updated in place. Member counts are
always computed from these rows, never stored.
"""
