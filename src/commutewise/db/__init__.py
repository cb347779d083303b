"""Database clients and utilities."""

from .supabase import execute, get_supabase_client, require_client

__all__ = ["execute", "get_supabase_client", "require_client"]
