"""AI copywriting for agent bios and listing descriptions using LangChain chat models."""

import os
import time
from enum import Enum
from typing import Optional

from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from linknow.models.listing import DESCRIPTION_MAX_LENGTH, TransactionType
from linknow.models.profile import BIO_MAX_LENGTH, AgentType
from linknow.services.validation import format_price
from linknow.utils.errors import AIGenerationError, ValidationFailed
from linknow.utils.logging import get_structured_logger, get_correlation_id, sanitize_text

logger = get_structured_logger(__name__)

BIO_SYSTEM_PROMPT = (
    "You are a professional copywriter helping real estate agents write short, "
    "compelling bios. Write in first person. Keep it under 120 characters. "
    "Be professional but friendly."
)

DESCRIPTION_SYSTEM_PROMPT = (
    "You are a real estate copywriter. Write unique, compelling property descriptions. "
    "Keep it under 150 characters. Be specific about the property details provided. "
    "Vary your writing style - don't start every description the same way."
)


def get_llm_model():
    """Get configured LLM model."""
    provider = os.environ.get("LLM_PROVIDER", "openai").lower()
    model_name = os.environ.get("LLM_MODEL", "gpt-4o-mini")

    logger.debug(
        "Getting LLM model",
        llm_provider=provider,
        llm_model=model_name
    )

    if provider == "anthropic":
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise AIGenerationError("ANTHROPIC_API_KEY not set")
        return ChatAnthropic(model=model_name, api_key=api_key, max_tokens=100)
    elif provider == "openai":
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise AIGenerationError("OPENAI_API_KEY not set")
        return ChatOpenAI(model=model_name, api_key=api_key, max_tokens=100)
    else:
        raise AIGenerationError(f"Unsupported LLM provider: {provider}")


def build_bio_prompt(name: str, location: Optional[str] = None, agent_type: Optional[str] = None) -> str:
    prompt = f"Write a short professional bio for a real estate agent named {name}"
    if location:
        prompt += f" based in {location}"
    if agent_type:
        if agent_type == AgentType.AGENCY:
            prompt += " who works with an agency"
        else:
            prompt += " who is an independent agent"
    return prompt + "."


def build_description_prompt(listing_fields: dict) -> str:
    bedrooms = listing_fields.get("bedrooms") or 0
    bathrooms = listing_fields.get("bathrooms") or 0
    property_type = listing_fields.get("property_type") or "property"
    if isinstance(property_type, Enum):
        property_type = property_type.value
    purpose = "for rent" if listing_fields.get("transaction_type") == TransactionType.RENT else "for sale"
    location = listing_fields.get("location") or "prime location"
    price = format_price(listing_fields.get("price")) or "competitive price"
    area = listing_fields.get("area") or "spacious"
    return (
        f"Write a short property description for: {bedrooms} bedroom {property_type} "
        f"{purpose} in {location}. Price: {price} AED. {bathrooms} bathrooms, {area} sqft."
    )


def _clean_output(content, max_length: int) -> str:
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )
    text = str(content or "").strip().strip('"').strip()
    return text[:max_length]


async def _generate(kind: str, system_prompt: str, user_prompt: str, max_length: int) -> str:
    correlation_id = get_correlation_id()
    model = get_llm_model()

    logger.info(
        "LLM generation request started",
        correlation_id=correlation_id,
        generation_kind=kind,
        prompt_size_chars=len(user_prompt)
    )
    start_time = time.time()

    try:
        response = await model.ainvoke([("system", system_prompt), ("human", user_prompt)])
    except Exception as e:
        logger.error(
            "LLM generation failed",
            correlation_id=correlation_id,
            generation_kind=kind,
            error_type=type(e).__name__,
            error=str(e)
        )
        raise AIGenerationError(f"Failed to generate {kind}")

    text = _clean_output(getattr(response, "content", response), max_length)
    logger.info(
        "LLM generation response received",
        correlation_id=correlation_id,
        generation_kind=kind,
        llm_latency_ms=round((time.time() - start_time) * 1000, 2),
        output_length=len(text),
        output_preview=sanitize_text(text, max_length=60)
    )
    if not text:
        raise AIGenerationError(f"Failed to generate {kind}")
    return text


async def generate_bio(name: str, location: Optional[str] = None, agent_type: Optional[str] = None) -> str:
    """Write a first-person agent bio (at most 120 characters)."""
    if not name or not name.strip():
        raise ValidationFailed("full_name", "Name is required")
    prompt = build_bio_prompt(name.strip(), location, agent_type)
    return await _generate("bio", BIO_SYSTEM_PROMPT, prompt, BIO_MAX_LENGTH)


async def generate_description(listing_fields: dict) -> str:
    """Write a listing description (at most 120 characters)."""
    prompt = build_description_prompt(listing_fields)
    return await _generate("description", DESCRIPTION_SYSTEM_PROMPT, prompt, DESCRIPTION_MAX_LENGTH)
