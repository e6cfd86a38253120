# Supabase table: vendor_kyc
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

vendor_kyc:
- id: uuid (primary key)
- vendor_id: uuid (foreign key to profiles.id, not null)
- business_name, ho_address, warehouse_address, phone_number: text (not null)
- gst_number, pan_number, tan_number: text (not null)
- gst_url, pan_url: text (nullable) - uploaded document URLs
- turnover_over_5cr: boolean (not null)
- status: text (not null, default: 'pending') - values: pending, approved, rejected
- rejection_reason: text (nullable)
- submitted_at: timestamp (default: now())
- reviewed_at: timestamp (nullable)
- reviewed_by: uuid (nullable, foreign key to profiles.id)
- version: integer (default: 1)
- is_active: boolean (default: true) - exactly one active row per vendor
- previous_kyc_id: uuid (nullable, self reference)
- submission_count: integer (default: 1)
"""
