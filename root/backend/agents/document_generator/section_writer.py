# -*- coding: utf-8 -*-
# ABOUTME: Generates the content of one document section with retry and exponential backoff.
# ABOUTME: Failures never raise; exhausted retries produce a placeholder the user can regenerate.
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from backend.models.generation_config import DocumentGenerationConfig
from backend.prompts.document_prompts import (
    DOCUMENT_SYSTEM_PROMPT,
    DOCUMENT_USER_SUFFIX,
    EMPTY_SECTION_MESSAGE,
    FAILED_SECTION_MESSAGE,
    SECTION_SYSTEM_PROMPT,
    SECTION_USER_SUFFIX,
)

logger = logging.getLogger(__name__)


async def generate_section_content(
    model: Any,
    section: str,
    prompt: str,
    config: DocumentGenerationConfig,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> str:
    """
    Generate markdown for a single section.

    Empty completions are retried immediately; exceptions are retried after
    backoff_base_seconds * 2**attempt.
    """
    sleep = sleep or asyncio.sleep
    if config.section_by_section:
        system_prompt = SECTION_SYSTEM_PROMPT
        user_prompt = prompt + SECTION_USER_SUFFIX.format(section=section)
    else:
        system_prompt = DOCUMENT_SYSTEM_PROMPT
        user_prompt = prompt + DOCUMENT_USER_SUFFIX

    logger.info(f"Generating content for section '{section}' of document type '{config.document_type}'")

    attempt = 0
    while attempt < config.max_attempts:
        try:
            text, _ = await model.achat(
                user_prompt,
                system_prompt=system_prompt,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                model_name=config.model_name,
            )
        except Exception as e:
            attempt += 1
            logger.error(f"Error (attempt {attempt}/{config.max_attempts}) generating section '{section}': {e}")
            if attempt < config.max_attempts:
                delay = config.backoff_base_seconds * (2 ** attempt)
                logger.info(f"Retrying in {delay}s...")
                await sleep(delay)
                continue
            return FAILED_SECTION_MESSAGE.format(section=section, attempts=config.max_attempts)

        content = (text or "").strip()
        if not content:
            attempt += 1
            logger.warning(f"Empty response for section '{section}' - retrying")
            continue

        logger.info(f"Received {len(content)} characters for section '{section}'")
        return content

    return EMPTY_SECTION_MESSAGE.format(section=section)
