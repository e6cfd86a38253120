# Supabase tables: products, product_discount_tiers
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

products:
- id: uuid (primary key)
- vendor_id: uuid (foreign key to profiles.id, not null)
- name: text (not null)
- description: text (nullable)
- price: numeric(10,2) (not null)
- image_url: text (nullable)
- category: text (nullable)
- stock_quantity: integer (default: 0)
- is_active: boolean (default: true)
- group_order_enabled: boolean (default: true)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

product_discount_tiers:
- id: uuid (primary key)
- product_id: uuid (foreign key to products.id, on delete cascade)
- tier_number: integer (not null) - 1-based, ordered by members_required
- members_required: integer (not null, >= 1)
- discount_percentage: numeric(5,2) (not null, 0..100)
- created_at: timestamp (default: now())
- unique constraint on (product_id, members_required)
"""
