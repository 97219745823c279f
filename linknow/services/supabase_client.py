"""Supabase client wrapper with async context manager support."""

import os
from typing import Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from linknow.services.validation import normalize_phone
from linknow.utils.errors import NotFound, SupabaseError, ValidationFailed
import logging

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        """Enter async context."""
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context."""
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def _is_duplicate_slug(error: Exception) -> bool:
    message = str(error).lower()
    return "duplicate key" in message and "slug" in message


# Profiles table operations
async def create_profile(user_id: str, profile_data: dict) -> dict:
    """Create a profile for a user."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").insert({**profile_data, "user_id": user_id}).execute()
        except Exception as e:
            if _is_duplicate_slug(e):
                raise ValidationFailed("slug", "This link is already taken")
            raise SupabaseError(f"Failed to create profile: {e}")
        if result.data and len(result.data) > 0:
            return result.data[0]
        raise SupabaseError("Failed to create profile: no data returned")


async def get_profile_by_user_id(user_id: str) -> Optional[dict]:
    """Get the profile owned by a user."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("*").eq("user_id", user_id).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get profile by user_id: {e}")


async def get_profile_by_slug(slug: str) -> Optional[dict]:
    """Get profile by exact (case-sensitive) slug."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("*").eq("slug", slug).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get profile by slug: {e}")


async def get_profile_by_id(profile_id: str) -> Optional[dict]:
    """Get profile by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("*").eq("id", profile_id).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get profile: {e}")


async def find_profile_by_phone(phone_number: str, email: Optional[str] = None) -> Optional[dict]:
    """Find a profile whose normalized phone (and, if given, email) matches."""
    wanted_phone = normalize_phone(phone_number)
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("id, phone_number, email").execute()
        except Exception as e:
            raise SupabaseError(f"Failed to look up profile by phone: {e}")
    for row in result.data or []:
        if normalize_phone(row.get("phone_number")) != wanted_phone:
            continue
        if email is None or (row.get("email") or "").lower() == email.lower():
            return row
    return None


async def update_profile(profile_id: str, updates: dict) -> dict:
    """Update a profile."""
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").update({**updates, "updated_at": "now()"}).eq("id", profile_id).execute()
        except Exception as e:
            if _is_duplicate_slug(e):
                raise ValidationFailed("slug", "This link is already taken")
            raise SupabaseError(f"Failed to update profile: {e}")
        if result.data and len(result.data) > 0:
            return result.data[0]
        raise NotFound(f"Profile not found: {profile_id}")


# Properties table operations
async def create_property(profile_id: str, property_data: dict) -> dict:
    """Create a property for a profile."""
    async with SupabaseClient() as client:
        try:
            result = client.table("properties").insert({**property_data, "profile_id": profile_id}).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to create property: {e}")
        if result.data and len(result.data) > 0:
            return result.data[0]
        raise SupabaseError("Failed to create property: no data returned")


async def get_properties_by_profile(profile_id: str) -> list[dict]:
    """Get a profile's properties in display order (ties by creation)."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("properties")
                .select("*")
                .eq("profile_id", profile_id)
                .order("display_order")
                .order("created_at")
                .execute()
            )
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to get properties: {e}")


async def get_property_by_id(property_id: str) -> Optional[dict]:
    """Get property by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table("properties").select("*").eq("id", property_id).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get property: {e}")


async def update_property(property_id: str, updates: dict) -> dict:
    """Update a property."""
    async with SupabaseClient() as client:
        try:
            result = client.table("properties").update({**updates, "updated_at": "now()"}).eq("id", property_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to update property: {e}")
        if result.data and len(result.data) > 0:
            return result.data[0]
        raise NotFound(f"Property not found: {property_id}")


async def delete_property(property_id: str) -> None:
    """Delete a property (no error if it is already gone)."""
    async with SupabaseClient() as client:
        try:
            client.table("properties").delete().eq("id", property_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to delete property: {e}")


async def reorder_properties(profile_id: str, property_ids: list[str]) -> None:
    """Write display_order = position for each property of a profile."""
    async with SupabaseClient() as client:
        try:
            for position, property_id in enumerate(property_ids):
                (
                    client.table("properties")
                    .update({"display_order": position})
                    .eq("id", property_id)
                    .eq("profile_id", profile_id)
                    .execute()
                )
        except Exception as e:
            raise SupabaseError(f"Failed to reorder properties: {e}")
