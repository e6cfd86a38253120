# Supabase tables: groups, group_members, group_join_requests, group_invites
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- creator_id: uuid (foreign key to profiles.id, not null)
- product_id: uuid (foreign key to products.id, not null)
- is_private: boolean (default: true)
- invite_only: boolean (default: false)
- auto_approve_requests: boolean (default: false)
- access_code: text (nullable) - set for private groups, only shown to the creator
- member_limit: integer (default: 50)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, on delete cascade)
- user_id: uuid (foreign key to profiles.id, not null)
- joined_at: timestamp (default: now())
- unique constraint on (group_id, user_id)

group_join_requests:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, on delete cascade)
- user_id: uuid (foreign key to profiles.id, not null)
- status: text (not null, default: 'pending') - values: pending, approved, rejected
- requested_at: timestamp (default: now())
- reviewed_at: timestamp (nullable)
- unique constraint on (group_id, user_id)

group_invites:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, on delete cascade)
- invited_by: uuid (foreign key to profiles.id, not null)
- invited_email: text (not null, stored lower case)
- status: text (not null, default: 'pending') - values: pending, accepted
- created_at: timestamp (default: now())

The unique constraints on (group_id, user_id) are what make joins idempotent:
the service writes membership and request rows with upsert on that pair.
"""
