# ABOUTME: Frontend configuration loaded from the environment
# ABOUTME: Backend URL, Supabase credentials, Stripe price ids and UI constants

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from parent directory (.env is in root/)
ROOT_DIR = Path(__file__).parent.parent
ENV_PATH = ROOT_DIR / '.env'

# Only load .env if it exists (for local development)
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
else:
    # Try the working directory and its parent
    ENV_PATH = Path.cwd() / '.env'
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH)
    else:
        ENV_PATH = Path.cwd().parent / '.env'
        if ENV_PATH.exists():
            load_dotenv(ENV_PATH)

# Constants
API_BASE_URL = os.getenv('API_BASE_URL', 'http://localhost:8000')
SUPABASE_URL = os.getenv('SUPABASE_URL')
SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY')

# Progress polling while a document is generating
PROGRESS_REFRESH_SECONDS = 2


class ProductConfig:
    """Purchasable products shown in the credits panel."""

    PRODUCTS = {
        "single_plan": {
            "name": "Single Plan",
            "description": "Unlock every document of one project",
            "price_id": os.getenv('STRIPE_PRICE_SINGLE_PLAN', ''),
        },
        "complete_guide": {
            "name": "Complete Guide",
            "description": "Unlock this project and receive one credit",
            "price_id": os.getenv('STRIPE_PRICE_COMPLETE_GUIDE', ''),
        },
        "agency_pack": {
            "name": "Agency Pack",
            "description": "Ten project unlocks for agencies and consultants",
            "price_id": os.getenv('STRIPE_PRICE_AGENCY_PACK', ''),
        },
    }

    @classmethod
    def purchasable(cls):
        """Products that have a Stripe price configured."""
        return {pid: info for pid, info in cls.PRODUCTS.items() if info["price_id"]}


class WizardConfig:
    """Questionnaire fields of the new-project wizard, in display order."""

    FIELDS = [
        ("business_type", "Business type", "e.g. artisan bakery, B2B SaaS, yoga studio"),
        ("description", "Describe your business", "What do you sell and what makes you different?"),
        ("name", "Business name", "The name used throughout your documents"),
        ("target_audience", "Target audience", "Who are your ideal customers?"),
        ("goals", "Goals", "What do you want to achieve in the next 6-12 months?"),
        ("budget", "Monthly marketing budget", "e.g. $2,000"),
        ("challenges", "Challenges", "What is holding your growth back?"),
    ]
    OPTIONAL_FIELDS = {"description"}
