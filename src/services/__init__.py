"""Services package - External service integrations."""

from src.services.evolution import EvolutionAPIClient, get_evolution_client
from src.services.supabase import SupabaseService, get_supabase_service

__all__ = [
    "EvolutionAPIClient",
    "get_evolution_client",
    "SupabaseService",
    "get_supabase_service",
]
