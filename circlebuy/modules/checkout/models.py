# Supabase tables: group_checkout_sessions, group_checkout_items
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

group_checkout_sessions:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null)
- product_id: uuid (foreign key to products.id, not null)
- created_by: uuid (foreign key to profiles.id, not null)
- member_count: integer (not null) - final member count the price was fixed at
- quantity: integer (default: 1) - units per member
- failed_user_ids: uuid[] (default: '{}') - members whose item insert failed, cleared by retry
- discount_percentage: numeric(5,2) (not null)
- unit_price: numeric(10,2) (not null)
- status: text (not null, default: 'member_payments') - values: member_payments, completed
- created_at: timestamp (default: now())

group_checkout_items:
- id: uuid (primary key)
- session_id: uuid (foreign key to group_checkout_sessions.id, on delete cascade)
- group_id: uuid (foreign key to groups.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- product_id: uuid (foreign key to products.id, not null)
- quantity: integer (default: 1)
- unit_price: numeric(10,2) (not null)
- total_price: numeric(10,2) (not null)
- shipping_address: jsonb (nullable)
- payment_status: text (not null, default: 'pending') - values: pending, paid, failed
- payment_reference: text (nullable) - id returned by the payment processor
- updated_at: timestamp (nullable)
- unique constraint on (session_id, user_id)

A session completes only when it holds member_count items and all are paid.

Items are independent: one member's failed payment never blocks the others.
"""
