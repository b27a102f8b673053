# ABOUTME: Stripe SDK configuration
# ABOUTME: Applies the secret key and pinned API version before any Stripe call

import os
import logging
import stripe
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

STRIPE_API_VERSION = "2023-10-16"


def configure_stripe():
    """Configure the stripe module from the environment and return it."""
    secret_key = os.getenv("STRIPE_SECRET_KEY")
    if not secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; Stripe calls will fail")
    stripe.api_key = secret_key
    stripe.api_version = STRIPE_API_VERSION
    return stripe
