# ABOUTME: Supabase client configuration and initialization
# ABOUTME: Provides the singleton service-role client used by every backend service

"""
Supabase client configuration for MarketingGuide AI.
"""

import os
import logging
from dotenv import load_dotenv
from supabase import create_client

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

# Singleton client instance
_supabase_client = None


def get_supabase_client():
    """
    Get or create Supabase client instance.

    The service role key is preferred so webhook and admin handlers can
    write rows owned by any user; SUPABASE_KEY is accepted for local setups.

    Raises:
        ValueError: If SUPABASE_URL or a key is not set in environment
    """
    global _supabase_client

    if _supabase_client is None:
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_KEY")

        if not url:
            raise ValueError(
                "SUPABASE_URL not set in environment. "
                "Please set SUPABASE_URL in your .env file."
            )

        if not key:
            raise ValueError(
                "SUPABASE_SERVICE_ROLE_KEY not set in environment. "
                "Please set SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) in your .env file."
            )

        _supabase_client = create_client(url, key)
        logger.info(f"Supabase client initialized with URL: {url}")

    return _supabase_client


def reset_supabase_client():
    """Reset the singleton client instance."""
    global _supabase_client
    _supabase_client = None
    logger.info("Supabase client reset")
