# Supabase table: profiles
# Schema is documented in circlebuy/modules/auth/models.py, which creates the rows.
# Reads and updates are handled via Supabase SDK in service.py.
