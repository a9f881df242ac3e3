"""Global pytest configuration."""

import os

# Settings are cached on first use, so the test environment is pinned before any imports
os.environ["DATABASE_URL"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["FREE_DAILY_LIMIT"] = "3"
os.environ["SEED_DEMO_ACCOUNTS"] = "false"
os.environ["AI_INTEGRATIONS_OPENAI_API_KEY"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
