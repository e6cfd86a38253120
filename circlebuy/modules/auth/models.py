# Supabase Auth
# This module uses Supabase's built-in authentication system.
# Supabase Auth owns auth.users, password hashing, sessions and JWT issuing.

"""
Alongside each auth user, registration writes a row to the public `profiles`
table (id = auth user id). The profile carries the application role that the
rest of the service authorizes against:

profiles:
- id: uuid (primary key, foreign key to auth.users.id)
- email: text (not null)
- full_name: text (nullable)
- role: text (not null, default: 'user') - values: user, vendor, admin
- avatar_url: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

Role 'admin' is never self-assigned; only an admin can grant it.
"""
