# Supabase table: cart_items
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

cart_items:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- product_id: uuid (foreign key to products.id, not null)
- quantity: integer (not null, default: 1)
- created_at: timestamp (default: now())
- unique constraint on (user_id, product_id)
"""
