# tests/conftest.py

import os

# Settings require these; the Supabase client is only built on first use
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
