"""
Infrastructure layer - external service integrations.

- storage: Supabase Storage REST client (httpx), plus an in-memory mock

These wrappers translate between the backend's wire format and our
value objects.
"""
