# Supabase tables: orders, order_items
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

orders:
- id: uuid (primary key)
- order_number: text (unique, not null) - e.g. CB20260118-3FA9C1
- user_id: uuid (foreign key to profiles.id, not null)
- status: text (not null, default: 'pending') - values: pending, paid, processing, shipped, delivered, cancelled
- payment_status: text (not null, default: 'pending') - values: pending, paid, failed
- payment_reference: text (nullable)
- subtotal_amount: numeric(10,2) (not null)
- shipping_amount: numeric(10,2) (not null)
- total_amount: numeric(10,2) (not null)
- shipping_address: jsonb (not null)
- shipping_address_text: text (not null) - one-line copy for vendor exports
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

order_items:
- id: uuid (primary key)
- order_id: uuid (foreign key to orders.id, on delete cascade)
- product_id: uuid (foreign key to products.id, not null)
- vendor_id: uuid (foreign key to profiles.id, not null) - lets vendors find their lines
- product_name: text (not null) - snapshot at purchase time
- product_image_url: text (nullable)
- quantity: integer (not null)
- unit_price: numeric(10,2) (not null)
- total_price: numeric(10,2) (not null)

Prices are copied at purchase time; later product edits never change an order.
"""
